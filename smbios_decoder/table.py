"""Generic SMBIOS structure access and structure table walking.

Implements the common 4-byte structure header, the string set that trails every
structure, and the walk over a raw structure table as exposed by Linux in
/sys/firmware/dmi/tables/DMI (DSP0134 section 6.1).
"""

import logging
import struct
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from smbios_decoder.errors import TableParseError

logger = logging.getLogger(__name__)

HEADER_LENGTH = 4

TABLE_TYPE_PROCESSOR_INFORMATION = 4
TABLE_TYPE_END_OF_TABLE = 127

# Structure types per DSP0134 section 7
TABLE_TYPES = {
    0: "BIOS Information",
    1: "System Information",
    2: "Baseboard Information",
    3: "Chassis Information",
    4: "Processor Information",
    5: "Memory Controller Information",
    6: "Memory Module Information",
    7: "Cache Information",
    8: "Port Connector Information",
    9: "System Slots",
    10: "On Board Devices Information",
    11: "OEM Strings",
    12: "System Configuration Options",
    13: "BIOS Language Information",
    14: "Group Associations",
    15: "System Event Log",
    16: "Physical Memory Array",
    17: "Memory Device",
    18: "32-bit Memory Error Information",
    19: "Memory Array Mapped Address",
    20: "Memory Device Mapped Address",
    21: "Built-in Pointing Device",
    22: "Portable Battery",
    23: "System Reset",
    24: "Hardware Security",
    25: "System Power Controls",
    26: "Voltage Probe",
    27: "Cooling Device",
    28: "Temperature Probe",
    29: "Electrical Current Probe",
    30: "Out-of-band Remote Access",
    31: "Boot Integrity Services Entry Point",
    32: "System Boot Information",
    33: "64-bit Memory Error Information",
    34: "Management Device",
    35: "Management Device Component",
    36: "Management Device Threshold Data",
    37: "Memory Channel",
    38: "IPMI Device Information",
    39: "System Power Supply",
    40: "Additional Information",
    41: "Onboard Devices Extended Information",
    42: "Management Controller Host Interface",
    43: "TPM Device",
    44: "Processor Additional Information",
    126: "Inactive",
    127: "End Of Table",
}


def table_type_name(table_type: int) -> str:
    """Return the DSP0134 name of a structure type."""
    if table_type in TABLE_TYPES:
        return TABLE_TYPES[table_type]
    if table_type >= 0x80:
        return "OEM-specific Type"
    return f"{table_type:#x}"


@dataclass(frozen=True)
class Header:
    """Common 4-byte structure header."""
    type: int
    length: int
    handle: int

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "Header":
        if offset + HEADER_LENGTH > len(data):
            raise TableParseError(
                f"structure header at 0x{offset:x} too short: {len(data) - offset} bytes"
            )
        table_type, length, handle = struct.unpack_from('<BBH', data, offset)
        return cls(type=table_type, length=length, handle=handle)

    def __str__(self) -> str:
        return (
            f"Handle 0x{self.handle:04X}, DMI type {self.type}, {self.length} bytes\n"
            f"{table_type_name(self.type)}"
        )


class Table:
    """A single SMBIOS structure: its formatted area and its string set.

    ``data`` holds the formatted area including the header, so field offsets
    are the ones listed in DSP0134 (relative to the start of the structure).
    Reads are bounded by the declared length; bytes after it belong to the
    string set or to the next structure.
    """

    def __init__(self, header: Header, data: bytes, strings: Optional[Sequence[str]] = None):
        if len(data) != header.length:
            raise TableParseError(
                f"formatted area is {len(data)} bytes, header declares {header.length}"
            )
        self.header = header
        self.data = bytes(data)
        self.strings = tuple(strings or ())

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> Tuple["Table", int]:
        """Parse one structure at ``offset`` and return (table, next_offset)."""
        header = Header.from_bytes(data, offset)
        if header.length < HEADER_LENGTH:
            raise TableParseError(
                f"structure at 0x{offset:x} declares invalid length {header.length}"
            )

        end = offset + header.length
        if end > len(data):
            raise TableParseError(
                f"structure at 0x{offset:x} runs past end of data "
                f"({header.length} bytes declared, {len(data) - offset} available)"
            )

        terminator = data.find(b"\x00\x00", end)
        if terminator < 0:
            raise TableParseError(f"unterminated string set in structure at 0x{offset:x}")

        strings = []
        if terminator > end:
            strings = [
                raw.decode("utf-8", errors="replace")
                for raw in data[end:terminator].split(b"\x00")
            ]

        return cls(header, data[offset:end], strings), terminator + 2

    @property
    def type(self) -> int:
        return self.header.type

    @property
    def handle(self) -> int:
        return self.header.handle

    def __len__(self) -> int:
        return len(self.data)

    def has_field(self, offset: int, size: int) -> bool:
        """True when ``size`` bytes at ``offset`` lie inside the declared length."""
        return offset >= 0 and offset + size <= len(self.data)

    def _read(self, fmt: str, offset: int) -> int:
        size = struct.calcsize(fmt)
        if not self.has_field(offset, size):
            raise TableParseError(
                f"field at 0x{offset:02x} ({size} bytes) is beyond structure length 0x{len(self):02x}"
            )
        return struct.unpack_from(fmt, self.data, offset)[0]

    def read_u8(self, offset: int) -> int:
        return self._read('<B', offset)

    def read_u16(self, offset: int) -> int:
        return self._read('<H', offset)

    def read_u32(self, offset: int) -> int:
        return self._read('<I', offset)

    def read_u64(self, offset: int) -> int:
        return self._read('<Q', offset)

    def get_string(self, index: int) -> str:
        """Resolve a 1-based string index; 0 means no string."""
        if index == 0:
            return "Not Specified"
        if index <= len(self.strings):
            return self.strings[index - 1]
        return "<BAD INDEX>"

    def get_string_at(self, offset: int) -> str:
        """Resolve the string whose index is stored at ``offset``."""
        return self.get_string(self.read_u8(offset))

    def __repr__(self) -> str:
        return (
            f"Table(type={self.type}, length={len(self)}, "
            f"handle=0x{self.handle:04x}, strings={len(self.strings)})"
        )


def parse_tables(data: bytes) -> List[Table]:
    """Split a raw SMBIOS structure table into structures.

    Args:
        data: Structure table bytes (no entry point).

    Returns:
        Structures in table order, up to and including End Of Table.
    """
    tables = []
    offset = 0

    while len(data) - offset >= HEADER_LENGTH:
        table, next_offset = Table.from_bytes(data, offset)
        logger.debug(
            f"Parsed structure type {table.type} handle 0x{table.handle:04x} "
            f"at 0x{offset:x} ({len(table)} bytes, {len(table.strings)} strings)"
        )
        tables.append(table)
        offset = next_offset

        if table.type == TABLE_TYPE_END_OF_TABLE:
            break

    logger.debug(f"Parsed {len(tables)} structures from {len(data)} bytes")
    return tables
