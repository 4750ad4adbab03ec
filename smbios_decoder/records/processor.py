"""Processor Information structure (SMBIOS type 4, DSP0134 7.5)."""

import logging
import struct
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from smbios_decoder.errors import TruncatedRecord, WrongRecordType
from smbios_decoder.records.processor_types import (
    processor_characteristics_list,
    processor_characteristics_str,
    processor_family_name,
    processor_status_str,
    processor_type_name,
    processor_upgrade_name,
)
from smbios_decoder.records.signature import Signature, cpu_flags, decode_signature
from smbios_decoder.table import TABLE_TYPE_PROCESSOR_INFORMATION, Header, Table

logger = logging.getLogger(__name__)

# Everything up to and including Processor Upgrade (SMBIOS 2.0)
MIN_LENGTH = 0x1A

FAMILY_USE_FAMILY2 = 0xFE
COUNT_USE_EXTENDED = 0xFF
CACHE_HANDLE_NOT_PROVIDED = 0xFFFF

# (attribute, offset, format); "s" is a string index resolved at decode time
FIELD_LAYOUT = (
    ("socket_designation", 0x04, "s"),
    ("processor_type", 0x05, "B"),
    ("family", 0x06, "B"),
    ("manufacturer", 0x07, "s"),
    ("processor_id", 0x08, "Q"),
    ("version", 0x10, "s"),
    ("voltage", 0x11, "B"),
    ("external_clock", 0x12, "H"),
    ("max_speed", 0x14, "H"),
    ("current_speed", 0x16, "H"),
    ("status", 0x18, "B"),
    ("upgrade", 0x19, "B"),
    ("l1_cache_handle", 0x1A, "H"),
    ("l2_cache_handle", 0x1C, "H"),
    ("l3_cache_handle", 0x1E, "H"),
    ("serial_number", 0x20, "s"),
    ("asset_tag", 0x21, "s"),
    ("part_number", 0x22, "s"),
    ("core_count", 0x23, "B"),
    ("core_enabled", 0x24, "B"),
    ("thread_count", 0x25, "B"),
    ("characteristics", 0x26, "H"),
    ("family2", 0x28, "H"),
    ("core_count2", 0x2A, "H"),
    ("core_enabled2", 0x2C, "H"),
    ("thread_count2", 0x2E, "H"),
)

_FIELD_SIZES = {"s": 1, "B": 1, "H": 2, "Q": 8}


def _freq_str(mhz: int) -> str:
    if mhz == 0:
        return "Unknown"
    return f"{mhz} MHz"


def _cache_handle_str(handle: int) -> str:
    if handle == CACHE_HANDLE_NOT_PROVIDED:
        return "Not Provided"
    return f"0x{handle:04X}"


@dataclass(frozen=True)
class ProcessorInformation:
    """Decoded Processor Information structure.

    Every field is always present; fields past the declared length keep their
    zero defaults. The ``get_*`` accessors apply the length checks that decide
    between the legacy 8-bit fields and their later 16-bit replacements.
    """
    header: Header
    socket_designation: str = ""
    processor_type: int = 0
    family: int = 0
    manufacturer: str = ""
    processor_id: int = 0
    version: str = ""
    voltage: int = 0
    external_clock: int = 0
    max_speed: int = 0
    current_speed: int = 0
    status: int = 0
    upgrade: int = 0
    l1_cache_handle: int = 0
    l2_cache_handle: int = 0
    l3_cache_handle: int = 0
    serial_number: str = ""
    asset_tag: str = ""
    part_number: str = ""
    core_count: int = 0
    core_enabled: int = 0
    thread_count: int = 0
    characteristics: int = 0
    family2: int = 0
    core_count2: int = 0
    core_enabled2: int = 0
    thread_count2: int = 0

    @classmethod
    def from_table(cls, table: Table) -> "ProcessorInformation":
        """Decode a type 4 structure.

        Raises:
            WrongRecordType: the structure is not type 4.
            TruncatedRecord: the structure is shorter than 0x1A bytes.
        """
        if table.type != TABLE_TYPE_PROCESSOR_INFORMATION:
            raise WrongRecordType(TABLE_TYPE_PROCESSOR_INFORMATION, table.type)
        if len(table) < MIN_LENGTH:
            raise TruncatedRecord(len(table), MIN_LENGTH)

        readers = {
            "s": table.get_string_at,
            "B": table.read_u8,
            "H": table.read_u16,
            "Q": table.read_u64,
        }
        values = {}
        for name, offset, fmt in FIELD_LAYOUT:
            if not table.has_field(offset, _FIELD_SIZES[fmt]):
                break
            values[name] = readers[fmt](offset)

        logger.debug(
            f"Decoded processor 0x{table.handle:04x}: {len(values)} of "
            f"{len(FIELD_LAYOUT)} fields present in {len(table)} bytes"
        )
        return cls(header=table.header, **values)

    @property
    def length(self) -> int:
        return self.header.length

    @property
    def handle(self) -> int:
        return self.header.handle

    def get_family(self) -> int:
        """Processor family, taken from Processor Family 2 when flagged."""
        if self.family == FAMILY_USE_FAMILY2 and self.length >= 0x2A:
            return self.family2
        return self.family

    def get_voltage(self) -> float:
        """Processor voltage in volts, 0.0 when unknown."""
        if self.voltage & 0x80 == 0:
            # Legacy mode: bitmap of supported voltages
            if self.voltage & 0x01:
                return 5.0
            if self.voltage & 0x02:
                return 3.3
            if self.voltage & 0x04:
                return 2.9
            return 0.0
        return (self.voltage & 0x7F) / 10.0

    def get_core_count(self) -> int:
        """Number of cores detected by the BIOS for this socket."""
        if self.length >= 0x2C and self.core_count == COUNT_USE_EXTENDED:
            return self.core_count2
        return self.core_count

    def get_core_enabled(self) -> int:
        """Number of cores enabled by the BIOS and available to the OS."""
        if self.length >= 0x2E and self.core_enabled == COUNT_USE_EXTENDED:
            return self.core_enabled2
        return self.core_enabled

    def get_thread_count(self) -> int:
        """Number of threads detected by the BIOS for this socket."""
        if self.length >= 0x30 and self.thread_count == COUNT_USE_EXTENDED:
            return self.thread_count2
        return self.thread_count

    def signature_info(self) -> Tuple[Optional[Signature], bool]:
        """Decoded signature (None if the family has no layout) and whether EDX holds flags."""
        return decode_signature(self.get_family(), self.processor_id)

    def signature(self) -> Optional[Signature]:
        return self.signature_info()[0]

    def flags(self) -> List[str]:
        """CPU flags, empty for families whose ID carries no EDX."""
        _, has_flags = self.signature_info()
        if not has_flags:
            return []
        return cpu_flags(self.processor_id)

    def id_str(self) -> str:
        return " ".join(f"{b:02X}" for b in struct.pack('<Q', self.processor_id))

    def render(self) -> str:
        signature, has_flags = self.signature_info()

        lines = [
            str(self.header),
            f"Socket Designation: {self.socket_designation}",
            f"Type: {processor_type_name(self.processor_type)}",
            f"Family: {processor_family_name(self.get_family())}",
            f"Manufacturer: {self.manufacturer}",
            f"ID: {self.id_str()}",
        ]
        if signature is not None:
            lines.append(f"Signature: {signature}")
        if has_flags:
            lines.append("Flags:")
            lines.extend("\t" + flag for flag in cpu_flags(self.processor_id))

        lines.extend([
            f"Version: {self.version}",
            f"Voltage: {self.get_voltage():.1f} V",
            f"External Clock: {_freq_str(self.external_clock)}",
            f"Max Speed: {_freq_str(self.max_speed)}",
            f"Current Speed: {_freq_str(self.current_speed)}",
            f"Status: {processor_status_str(self.status)}",
            f"Upgrade: {processor_upgrade_name(self.upgrade)}",
        ])
        if self.length > 0x1A:
            lines.extend([
                f"L1 Cache Handle: {_cache_handle_str(self.l1_cache_handle)}",
                f"L2 Cache Handle: {_cache_handle_str(self.l2_cache_handle)}",
                f"L3 Cache Handle: {_cache_handle_str(self.l3_cache_handle)}",
            ])
        if self.length > 0x20:
            lines.extend([
                f"Serial Number: {self.serial_number}",
                f"Asset Tag: {self.asset_tag}",
                f"Part Number: {self.part_number}",
            ])
        if self.length > 0x23:
            lines.extend([
                f"Core Count: {self.get_core_count()}",
                f"Core Enabled: {self.get_core_enabled()}",
            ])
            if self.get_thread_count() > 0:
                lines.append(f"Thread Count: {self.get_thread_count()}")
            lines.append(f"Characteristics:\n{processor_characteristics_str(self.characteristics)}")

        return "\n\t".join(lines)

    def __str__(self) -> str:
        return self.render()

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready view with resolved values, gated like the text report."""
        signature, has_flags = self.signature_info()
        result = {
            "handle": f"0x{self.handle:04x}",
            "type": self.header.type,
            "length": self.length,
            "socket_designation": self.socket_designation,
            "processor_type": processor_type_name(self.processor_type),
            "family": self.get_family(),
            "family_name": processor_family_name(self.get_family()),
            "manufacturer": self.manufacturer,
            "id": f"0x{self.processor_id:016x}",
            "signature": str(signature) if signature is not None else None,
            "flags": cpu_flags(self.processor_id) if has_flags else [],
            "version": self.version,
            "voltage": round(self.get_voltage(), 1),
            "external_clock_mhz": self.external_clock,
            "max_speed_mhz": self.max_speed,
            "current_speed_mhz": self.current_speed,
            "status": processor_status_str(self.status),
            "upgrade": processor_upgrade_name(self.upgrade),
        }
        if self.length > 0x1A:
            result["cache_handles"] = {
                "l1": _cache_handle_str(self.l1_cache_handle),
                "l2": _cache_handle_str(self.l2_cache_handle),
                "l3": _cache_handle_str(self.l3_cache_handle),
            }
        if self.length > 0x20:
            result["serial_number"] = self.serial_number
            result["asset_tag"] = self.asset_tag
            result["part_number"] = self.part_number
        if self.length > 0x23:
            result["core_count"] = self.get_core_count()
            result["core_enabled"] = self.get_core_enabled()
            result["thread_count"] = self.get_thread_count()
            result["characteristics"] = processor_characteristics_list(self.characteristics)
        return result
