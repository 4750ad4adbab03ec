"""Byte-level builders for SMBIOS structures used across the test modules."""

import struct

import pytest

from smbios_decoder.table import Table

# Full SMBIOS 3.0 Processor Information layout, 0x30 bytes
PROCESSOR_LAYOUT = '<BBHBBBBQBBHHHBBHHHBBBBBBHHHHH'

PROCESSOR_FIELDS = (
    "socket_designation",
    "processor_type",
    "family",
    "manufacturer",
    "processor_id",
    "version",
    "voltage",
    "external_clock",
    "max_speed",
    "current_speed",
    "status",
    "upgrade",
    "l1_cache_handle",
    "l2_cache_handle",
    "l3_cache_handle",
    "serial_number",
    "asset_tag",
    "part_number",
    "core_count",
    "core_enabled",
    "thread_count",
    "characteristics",
    "family2",
    "core_count2",
    "core_enabled2",
    "thread_count2",
)

# Xeon W-2145 as reported by a workstation board
DEFAULT_PROCESSOR = {
    "socket_designation": 1,
    "processor_type": 0x03,
    "family": 0xB3,
    "manufacturer": 2,
    "processor_id": (0xBFEBFBFF << 32) | 0x00050654,
    "version": 3,
    "voltage": 0x8B,
    "external_clock": 100,
    "max_speed": 4500,
    "current_speed": 3700,
    "status": 0x41,
    "upgrade": 0x39,
    "l1_cache_handle": 0x0005,
    "l2_cache_handle": 0x0006,
    "l3_cache_handle": 0x0007,
    "serial_number": 4,
    "asset_tag": 5,
    "part_number": 6,
    "core_count": 8,
    "core_enabled": 8,
    "thread_count": 16,
    "characteristics": 0x000C,
    "family2": 0xB3,
    "core_count2": 8,
    "core_enabled2": 8,
    "thread_count2": 16,
}

DEFAULT_STRINGS = (
    "CPU0",
    "Intel(R) Corporation",
    "Intel(R) Xeon(R) W-2145 CPU @ 3.70GHz",
    "SN-0001",
    "AT-0001",
    "PN-0001",
)


def string_set(strings) -> bytes:
    """Encode a structure's string set, including the double NUL terminator."""
    if not strings:
        return b"\x00\x00"
    return b"".join(s.encode() + b"\x00" for s in strings) + b"\x00"


def build_processor_record(length=0x30, handle=0x0004, strings=DEFAULT_STRINGS, table_type=4, **fields) -> bytes:
    """Build a type 4 structure truncated (or zero padded) to ``length`` bytes."""
    unknown = set(fields) - set(DEFAULT_PROCESSOR)
    if unknown:
        raise TypeError(f"unknown processor fields: {sorted(unknown)}")

    values = dict(DEFAULT_PROCESSOR, **fields)
    formatted = struct.pack(
        PROCESSOR_LAYOUT,
        table_type,
        length,
        handle,
        *[values[name] for name in PROCESSOR_FIELDS],
    )
    formatted = formatted[:length] + bytes(max(0, length - len(formatted)))
    return formatted + string_set(strings)


def build_structure(table_type, handle, body=b"", strings=()) -> bytes:
    """Build an arbitrary structure from its header fields and formatted body."""
    return struct.pack('<BBH', table_type, 4 + len(body), handle) + body + string_set(strings)


def end_of_table(handle=0xFEFF) -> bytes:
    return build_structure(127, handle)


@pytest.fixture
def make_processor_table():
    """Factory returning a parsed Table for a processor record."""
    def factory(**kwargs) -> Table:
        table, _ = Table.from_bytes(build_processor_record(**kwargs))
        return table
    return factory


@pytest.fixture
def dump_file(tmp_path):
    """A small structure table: BIOS, one processor, End Of Table."""
    bios = build_structure(0, 0x0000, bytes([1, 2, 0x00, 0xF0, 3, 0xFF]), ("Vendor", "1.0", "01/01/2024"))
    data = bios + build_processor_record() + end_of_table()
    path = tmp_path / "DMI"
    path.write_bytes(data)
    return path
