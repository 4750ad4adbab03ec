"""Test Processor Information decoding, value resolution and rendering."""

import dataclasses
import json

import pytest

from conftest import build_processor_record
from smbios_decoder.errors import TruncatedRecord, WrongRecordType
from smbios_decoder.records import ProcessorInformation, decode_table
from smbios_decoder.table import Table


def decode(**kwargs) -> ProcessorInformation:
    table, _ = Table.from_bytes(build_processor_record(**kwargs))
    return ProcessorInformation.from_table(table)


def test_rejects_short_records(make_processor_table):
    """Every declared length below 0x1A is rejected."""
    for length in range(4, 0x1A):
        with pytest.raises(TruncatedRecord) as excinfo:
            ProcessorInformation.from_table(make_processor_table(length=length))
        assert excinfo.value.length == length
        assert excinfo.value.minimum == 0x1A


def test_accepts_minimum_and_longer_records(make_processor_table):
    for length in (0x1A, 0x1B, 0x20, 0x23, 0x24, 0x28, 0x2A, 0x2C, 0x30, 0x34):
        pi = ProcessorInformation.from_table(make_processor_table(length=length))
        assert pi.length == length


def test_rejects_other_record_types(make_processor_table):
    for length in (0x10, 0x1A, 0x30):
        with pytest.raises(WrongRecordType) as excinfo:
            ProcessorInformation.from_table(make_processor_table(length=length, table_type=7))
        assert excinfo.value.expected == 4
        assert excinfo.value.actual == 7


def test_decodes_all_fields():
    pi = decode()

    assert pi.handle == 0x0004
    assert pi.socket_designation == "CPU0"
    assert pi.processor_type == 0x03
    assert pi.family == 0xB3
    assert pi.manufacturer == "Intel(R) Corporation"
    assert pi.processor_id == 0xBFEBFBFF00050654
    assert pi.version == "Intel(R) Xeon(R) W-2145 CPU @ 3.70GHz"
    assert pi.voltage == 0x8B
    assert (pi.external_clock, pi.max_speed, pi.current_speed) == (100, 4500, 3700)
    assert pi.status == 0x41
    assert pi.upgrade == 0x39
    assert (pi.l1_cache_handle, pi.l2_cache_handle, pi.l3_cache_handle) == (5, 6, 7)
    assert (pi.serial_number, pi.asset_tag, pi.part_number) == ("SN-0001", "AT-0001", "PN-0001")
    assert (pi.core_count, pi.core_enabled, pi.thread_count) == (8, 8, 16)
    assert pi.characteristics == 0x000C
    assert pi.family2 == 0xB3
    assert (pi.core_count2, pi.core_enabled2, pi.thread_count2) == (8, 8, 16)


def test_fields_past_declared_length_keep_defaults():
    pi = decode(length=0x1A)
    assert pi.upgrade == 0x39
    assert pi.l1_cache_handle == 0
    assert pi.serial_number == ""
    assert pi.core_count == 0
    assert pi.characteristics == 0
    assert pi.family2 == 0
    assert pi.thread_count2 == 0


def test_partial_field_is_not_read():
    """One byte of a 16-bit field is not enough to decode it."""
    pi = decode(length=0x1B, l1_cache_handle=0x1234)
    assert pi.l1_cache_handle == 0


def test_string_indices_resolve_at_decode_time():
    pi = decode(socket_designation=0, part_number=9)
    assert pi.socket_designation == "Not Specified"
    assert pi.part_number == "<BAD INDEX>"


def test_family_resolution():
    assert decode(family=0xFE, family2=0x101, length=0x2A).get_family() == 0x101
    assert decode(family=0xFE, family2=0x101, length=0x28).get_family() == 0xFE
    assert decode(family=0xB3, family2=0x101, length=0x30).get_family() == 0xB3
    assert decode(family=0xB3, length=0x1A).get_family() == 0xB3


def test_core_count_resolution():
    assert decode(core_count=0xFF, core_count2=64, length=0x2C).get_core_count() == 64
    assert decode(core_count=0xFF, core_count2=64, length=0x2A).get_core_count() == 255
    assert decode(core_count=12, core_count2=64, length=0x30).get_core_count() == 12


def test_core_enabled_resolution():
    assert decode(core_enabled=0xFF, core_enabled2=48, length=0x2E).get_core_enabled() == 48
    assert decode(core_enabled=0xFF, core_enabled2=48, length=0x2C).get_core_enabled() == 255
    assert decode(core_enabled=6, core_enabled2=48, length=0x30).get_core_enabled() == 6


def test_thread_count_resolution():
    assert decode(thread_count=0xFF, thread_count2=256, length=0x30).get_thread_count() == 256
    assert decode(thread_count=0xFF, thread_count2=256, length=0x2E).get_thread_count() == 255
    assert decode(thread_count=24, thread_count2=256, length=0x30).get_thread_count() == 24


@pytest.mark.parametrize("raw, volts", [
    (0x85, 0.5),
    (0x8B, 1.1),
    (0x01, 5.0),
    (0x02, 3.3),
    (0x04, 2.9),
    (0x00, 0.0),
    (0x03, 5.0),
    (0x06, 3.3),
    (0x80, 0.0),
])
def test_voltage(raw, volts):
    assert decode(voltage=raw).get_voltage() == pytest.approx(volts)


def test_minimum_record_rendering():
    """A 0x1A-byte record renders only the SMBIOS 2.0 fields."""
    pi = decode(
        length=0x1A,
        handle=0x0400,
        strings=("CPU0", "GenuineIntel", "Pentium(R)"),
        family=0x0B,
        processor_id=0x16A5,
        voltage=0x02,
        external_clock=66,
        max_speed=233,
        current_speed=0,
        status=0x41,
        upgrade=0x04,
    )

    assert pi.render() == (
        "Handle 0x0400, DMI type 4, 26 bytes\n"
        "Processor Information\n"
        "\tSocket Designation: CPU0\n"
        "\tType: Central Processor\n"
        "\tFamily: Pentium\n"
        "\tManufacturer: GenuineIntel\n"
        "\tID: A5 16 00 00 00 00 00 00\n"
        "\tSignature: Type 1, Family 6, Model 10, Stepping 5\n"
        "\tFlags:\n"
        "\tVersion: Pentium(R)\n"
        "\tVoltage: 3.3 V\n"
        "\tExternal Clock: 66 MHz\n"
        "\tMax Speed: 233 MHz\n"
        "\tCurrent Speed: Unknown\n"
        "\tStatus: Populated, Enabled\n"
        "\tUpgrade: ZIF Socket"
    )
    assert "Cache Handle" not in str(pi)
    assert "Serial Number" not in str(pi)
    assert "Core Count" not in str(pi)


def test_full_record_rendering():
    text = decode().render()
    lines = text.split("\n")

    assert lines[0] == "Handle 0x0004, DMI type 4, 48 bytes"
    assert lines[1] == "Processor Information"
    assert "\tFamily: Xeon" in lines
    assert "\tID: 54 06 05 00 FF FB EB BF" in lines
    assert "\tSignature: Type 0, Family 6, Model 85, Stepping 4" in lines
    assert "\t\tFPU (Floating-point unit on-chip)" in lines
    assert "\t\tPSN (Processor serial number present and enabled)" not in lines
    assert "\tVoltage: 1.1 V" in lines
    assert "\tStatus: Populated, Enabled" in lines
    assert "\tUpgrade: Socket LGA2066" in lines
    assert "\tL1 Cache Handle: 0x0005" in lines
    assert "\tSerial Number: SN-0001" in lines
    assert "\tCore Count: 8" in lines
    assert "\tThread Count: 16" in lines
    assert text.endswith("\tCharacteristics:\n\t\t64-bit capable\n\t\tMulti-Core")


def test_flags_follow_signature_in_bit_order():
    lines = decode(processor_id=(0x80000001 << 32) | 0x16A5).render().split("\n")
    start = lines.index("\tFlags:")
    assert lines[start - 1].startswith("\tSignature:")
    assert lines[start + 1:start + 3] == [
        "\t\tFPU (Floating-point unit on-chip)",
        "\t\tPBE (Pending break enabled)",
    ]
    assert lines[start + 3].startswith("\tVersion:")


def test_cache_handle_rendering():
    text = decode(l1_cache_handle=0xFFFF, l2_cache_handle=0x0ABC, l3_cache_handle=0).render()
    assert "\tL1 Cache Handle: Not Provided" in text
    assert "\tL2 Cache Handle: 0x0ABC" in text
    assert "\tL3 Cache Handle: 0x0000" in text


def test_field_groups_follow_declared_length():
    text = decode(length=0x20).render()
    assert "L3 Cache Handle" in text
    assert "Serial Number" not in text

    text = decode(length=0x23).render()
    assert "Part Number: PN-0001" in text
    assert "Core Count" not in text

    text = decode(length=0x24).render()
    assert "Core Count: 8" in text
    assert "Core Enabled: 0" in text
    assert "Thread Count" not in text
    assert "Characteristics:" in text


def test_zero_thread_count_is_omitted():
    text = decode(thread_count=0).render()
    assert "Core Enabled: 8" in text
    assert "Thread Count" not in text


def test_other_family_has_no_signature():
    text = decode(family=0x01).render()
    assert "\tFamily: Other" in text
    assert "Signature" not in text
    assert "Flags" not in text
    assert decode(family=0x01).flags() == []


def test_arm_signature_uses_family2():
    pi = decode(family=0xFE, family2=0x101, processor_id=0x410FD083)
    text = pi.render()
    assert "\tFamily: ARMv8" in text
    assert "\tSignature: Implementor 0x41, Variant 0x0, Architecture 15, Part 0xd08, Revision 3" in text
    assert "Flags" not in text


def test_arm_without_id_has_no_signature():
    text = decode(family=0xFE, family2=0x100, processor_id=0).render()
    assert "\tFamily: ARMv7" in text
    assert "Signature" not in text


def test_amd_signature_renders_without_type():
    pi = decode(family=0x6B, processor_id=(0x178BFBFF << 32) | 0x00800F12)
    lines = pi.render().split("\n")
    assert "\tFamily: Zen" in lines
    assert "\tSignature: Family 23, Model 1, Stepping 2" in lines
    start = lines.index("\tFlags:")
    assert lines[start + 1] == "\t\tFPU (Floating-point unit on-chip)"
    assert pi.to_dict()["flags"] == pi.flags() != []


def test_unknown_codes_render_as_hex():
    text = decode(processor_type=0x20, family=0x99, upgrade=0x7F, status=0x00).render()
    assert "\tType: 0x20" in text
    assert "\tFamily: 0x99" in text
    assert "\tUpgrade: 0x7f" in text
    assert "\tStatus: Unpopulated" in text


def test_rendering_is_deterministic():
    data = build_processor_record(family=0xFE, family2=0x18, core_count=0xFF, core_count2=96)
    first = ProcessorInformation.from_table(Table.from_bytes(data)[0])
    second = ProcessorInformation.from_table(Table.from_bytes(data)[0])
    assert first == second
    assert str(first) == str(second)


def test_records_are_immutable():
    pi = decode()
    with pytest.raises(dataclasses.FrozenInstanceError):
        pi.family = 0x01


def test_to_dict_is_json_ready():
    result = decode().to_dict()
    assert json.loads(json.dumps(result)) == result
    assert result["handle"] == "0x0004"
    assert result["family"] == 0xB3
    assert result["family_name"] == "Xeon"
    assert result["signature"] == "Type 0, Family 6, Model 85, Stepping 4"
    assert result["voltage"] == 1.1
    assert result["cache_handles"]["l1"] == "0x0005"
    assert result["thread_count"] == 16
    assert result["characteristics"] == ["64-bit capable", "Multi-Core"]


def test_to_dict_gates_optional_groups():
    result = decode(length=0x1A, family=0x01).to_dict()
    assert result["signature"] is None
    assert result["flags"] == []
    assert "cache_handles" not in result
    assert "serial_number" not in result
    assert "core_count" not in result


def test_decode_table_dispatch(make_processor_table):
    assert isinstance(decode_table(make_processor_table()), ProcessorInformation)
    bios, _ = Table.from_bytes(bytes([0, 4, 0, 0, 0, 0]))
    assert decode_table(bios) is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
