"""CPU signature and flag decoding from the Processor ID field.

The 64-bit Processor ID (DSP0134 7.5.3) holds CPUID leaf 1 EAX/EDX on x86
and MIDR_EL1 on ARM. Which layout applies is decided by the processor family.
"""

import enum
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union


class CPUVendor(enum.Enum):
    INTEL = "intel"
    AMD = "amd"
    ARM = "arm"


# Inclusive family code ranges for each signature layout
FAMILY_RANGES = {
    # Intel, also used for Cyrix and VIA parts
    CPUVendor.INTEL: (
        (0x0B, 0x15),
        (0x28, 0x2F),
        (0xA1, 0xB3),
        (0xB5, 0xB5),
        (0xB9, 0xC7),
        (0xCD, 0xCF),
        (0xD2, 0xDB),
        (0xDD, 0xE0),
    ),
    CPUVendor.AMD: (
        (0x18, 0x1D),
        (0x1F, 0x1F),
        (0x38, 0x3F),
        (0x46, 0x4F),
        (0x66, 0x6B),
        (0x83, 0x8F),
        (0xB6, 0xB7),
        (0xE4, 0xEF),
    ),
    CPUVendor.ARM: (
        (0x100, 0x101),
        (0x118, 0x119),
    ),
}

# CPUID leaf 1 EDX bits; empty entries are reserved and never reported
CPU_FLAGS = [
    "FPU (Floating-point unit on-chip)",  # 0
    "VME (Virtual mode extension)",
    "DE (Debugging extension)",
    "PSE (Page size extension)",
    "TSC (Time stamp counter)",
    "MSR (Model specific registers)",
    "PAE (Physical address extension)",
    "MCE (Machine check exception)",
    "CX8 (CMPXCHG8 instruction supported)",
    "APIC (On-chip APIC hardware supported)",
    "",  # 10
    "SEP (Fast system call)",
    "MTRR (Memory type range registers)",
    "PGE (Page global enable)",
    "MCA (Machine check architecture)",
    "CMOV (Conditional move instruction supported)",
    "PAT (Page attribute table)",
    "PSE-36 (36-bit page size extension)",
    "PSN (Processor serial number present and enabled)",
    "CLFSH (CLFLUSH instruction supported)",
    "",  # 20
    "DS (Debug store)",
    "ACPI (ACPI supported)",
    "MMX (MMX technology supported)",
    "FXSR (FXSAVE and FXSTOR instructions supported)",
    "SSE (Streaming SIMD extensions)",
    "SSE2 (Streaming SIMD extensions 2)",
    "SS (Self-snoop)",
    "HTT (Multi-threading)",
    "TM (Thermal monitor supported)",
    "",  # 30
    "PBE (Pending break enabled)",  # 31
]


@dataclass(frozen=True)
class IntelSignature:
    cpu_type: int
    family: int
    model: int
    stepping: int

    def __str__(self) -> str:
        return (
            f"Type {self.cpu_type}, Family {self.family}, "
            f"Model {self.model}, Stepping {self.stepping}"
        )


@dataclass(frozen=True)
class AMDSignature:
    family: int
    model: int
    stepping: int

    def __str__(self) -> str:
        return f"Family {self.family}, Model {self.model}, Stepping {self.stepping}"


@dataclass(frozen=True)
class ARMSignature:
    implementor: int
    variant: int
    architecture: int
    part: int
    revision: int

    def __str__(self) -> str:
        return (
            f"Implementor 0x{self.implementor:02x}, Variant 0x{self.variant:x}, "
            f"Architecture {self.architecture}, Part 0x{self.part:03x}, "
            f"Revision {self.revision}"
        )


Signature = Union[IntelSignature, AMDSignature, ARMSignature]


def classify_family(family: int) -> Optional[CPUVendor]:
    """Pick the signature layout for a resolved family code."""
    for vendor, ranges in FAMILY_RANGES.items():
        for low, high in ranges:
            if low <= family <= high:
                return vendor
    return None


def decode_intel_signature(eax: int) -> IntelSignature:
    return IntelSignature(
        cpu_type=(eax >> 12) & 0x3,
        family=((eax >> 20) & 0xFF) + ((eax >> 8) & 0xF),
        model=((eax >> 12) & 0xF0) + ((eax >> 4) & 0xF),
        stepping=eax & 0xF,
    )


def decode_amd_signature(eax: int) -> AMDSignature:
    family = (eax >> 8) & 0xF
    model = (eax >> 4) & 0xF
    # Extended family/model only count when the base family is 0xF
    if family == 0xF:
        family += (eax >> 20) & 0xFF
        model += (eax >> 12) & 0xF0
    return AMDSignature(family=family, model=model, stepping=eax & 0xF)


def decode_arm_signature(midr: int) -> Optional[ARMSignature]:
    if midr == 0:
        return None
    return ARMSignature(
        implementor=midr >> 24,
        variant=(midr >> 20) & 0xF,
        architecture=(midr >> 16) & 0xF,
        part=(midr >> 4) & 0xFFF,
        revision=midr & 0xF,
    )


_DECODERS = {
    CPUVendor.INTEL: decode_intel_signature,
    CPUVendor.AMD: decode_amd_signature,
    CPUVendor.ARM: decode_arm_signature,
}


def decode_signature(family: int, processor_id: int) -> Tuple[Optional[Signature], bool]:
    """Decode the signature held in the low half of the Processor ID.

    Args:
        family: Resolved processor family code.
        processor_id: Raw 64-bit Processor ID.

    Returns:
        (signature or None, whether the high half carries CPU flags)
    """
    vendor = classify_family(family)
    if vendor is None:
        return None, False

    signature = _DECODERS[vendor](processor_id & 0xFFFFFFFF)
    return signature, vendor in (CPUVendor.INTEL, CPUVendor.AMD)


def cpu_flags(processor_id: int) -> List[str]:
    """Names of the set EDX feature bits, lowest bit first."""
    edx = (processor_id >> 32) & 0xFFFFFFFF
    return [name for bit, name in enumerate(CPU_FLAGS) if name and edx & (1 << bit)]
