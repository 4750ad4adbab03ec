"""Typed decoders for individual SMBIOS structure types."""

from typing import Any, Callable, Dict, Optional

from smbios_decoder.records.processor import ProcessorInformation
from smbios_decoder.table import TABLE_TYPE_PROCESSOR_INFORMATION, Table

RECORD_DECODERS: Dict[int, Callable[[Table], Any]] = {
    TABLE_TYPE_PROCESSOR_INFORMATION: ProcessorInformation.from_table,
}


def decode_table(table: Table) -> Optional[Any]:
    """Decode a structure with its registered decoder, or return None."""
    decoder = RECORD_DECODERS.get(table.type)
    if decoder is None:
        return None
    return decoder(table)


__all__ = ["ProcessorInformation", "RECORD_DECODERS", "decode_table"]
