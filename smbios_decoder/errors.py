"""Exceptions raised while walking and decoding SMBIOS structures."""


class SMBIOSError(ValueError):
    """Base class for SMBIOS decoding errors."""


class TableParseError(SMBIOSError):
    """The structure table byte stream is malformed."""


class WrongRecordType(SMBIOSError):
    """A structure was handed to the decoder of another record type."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"invalid table type {actual} (expected {expected})")


class TruncatedRecord(SMBIOSError):
    """A structure is shorter than the fields its type requires."""

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"required fields missing: length 0x{length:02x} < 0x{minimum:02x}"
        )
