"""SMBIOS structure table decoder."""

from smbios_decoder.errors import SMBIOSError, TableParseError, TruncatedRecord, WrongRecordType
from smbios_decoder.records import ProcessorInformation, decode_table
from smbios_decoder.table import Header, Table, parse_tables

__version__ = "0.1.0"

__all__ = [
    "Header",
    "ProcessorInformation",
    "SMBIOSError",
    "Table",
    "TableParseError",
    "TruncatedRecord",
    "WrongRecordType",
    "decode_table",
    "parse_tables",
]
