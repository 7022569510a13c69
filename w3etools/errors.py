"""Errors raised while reading or writing W3E terrain data."""


class W3EError(Exception):
    """Base error for terrain encode/decode operations."""


class UnexpectedEndOfInput(W3EError):
    """A read needed more bits than the buffer has left.

    Attributes:
        position: Bit position of the failed read.
        requested: Number of bits the read needed.
        available: Number of bits left in the buffer.
    """

    def __init__(self, position: int, requested: int, available: int, message: str | None = None) -> None:
        self.position = position
        self.requested = requested
        self.available = available
        if message is None:
            message = (f"Unexpected end of input at bit {position}: "
                       f"need {requested} bits, {available} left")
        super().__init__(message)


class MalformedHeader(UnexpectedEndOfInput):
    """The buffer ends inside the header or one of its palettes."""


class MalformedGrid(UnexpectedEndOfInput):
    """The buffer ends inside the corner grid."""


class ModeViolation(W3EError):
    """A stream was used in the wrong direction."""


class InvalidFieldValue(W3EError, ValueError):
    """A value cannot be stored in its field.

    Attributes:
        field: Name of the offending field.
        value: The rejected value.
    """

    def __init__(self, field: str, value: object, detail: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid value for {field}: {value!r} ({detail})")


class UnsupportedFormat(W3EError):
    """The file tag or version is not one this codec reads."""
