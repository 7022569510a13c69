"""Bit addressable reader and writer for the terrain codec.

Bits are numbered MSB-first within each byte. Multi-byte values are built from
8-bit reads with the low byte first, so byte-aligned integers come out
little-endian.
"""

from math import ceil, isfinite

from bitstring import Bits, BitStream, ConstBitStream, pack

from w3etools.errors import InvalidFieldValue, ModeViolation, UnexpectedEndOfInput

MAX_BITS = 32
FLOAT32_MAX = 3.4028234663852886e38
TAG_LENGTH = 4


def fit_bits(value: int, bits: int, strict: bool = False, name: str = "value") -> int:
    """Fits an unsigned value into a field of the given width.

    Args:
        value: Value to store.
        bits: Width of the field in bits.
        strict: Raise instead of masking when the value does not fit.
        name: Field name used in error messages.

    Returns:
        int: The value masked to the field width.

    Raises:
        InvalidFieldValue: If strict and the value is outside 0..2**bits-1.
    """
    value = int(value)
    mask = (1 << bits) - 1
    if strict and not 0 <= value <= mask:
        raise InvalidFieldValue(name, value, f"does not fit in {bits} unsigned bits")
    return value & mask


def fit_signed(value: int, bits: int, strict: bool = False, name: str = "value") -> int:
    """Fits a signed value into a two's complement field of the given width."""
    value = int(value)
    low = -(1 << (bits - 1))
    high = (1 << (bits - 1)) - 1
    if strict and not low <= value <= high:
        raise InvalidFieldValue(name, value, f"does not fit in {bits} signed bits")
    return value & ((1 << bits) - 1)


def sign_extend(value: int, bits: int) -> int:
    if value & (1 << (bits - 1)):
        return value - (1 << bits)
    return value


def _check_width(bits: int) -> None:
    if not 1 <= bits <= MAX_BITS:
        raise ValueError(f"Bit width must be between 1 and {MAX_BITS}, got {bits}")


class BitReader:
    """Read-only cursor over an existing buffer.

    Every read either returns a value assembled from all the bits it asked for
    or raises UnexpectedEndOfInput and leaves the cursor where it was.
    """

    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._stream = ConstBitStream(bytes=bytes(data))

    @property
    def pos(self) -> int:
        """Current bit position from the start of the buffer."""
        return self._stream.pos

    @property
    def bytepos(self) -> int:
        return self._stream.pos // 8

    @property
    def length(self) -> int:
        """Total buffer length in bits."""
        return self._stream.len

    @property
    def remaining(self) -> int:
        return self._stream.len - self._stream.pos

    def _require(self, bits: int) -> None:
        if bits > self.remaining:
            raise UnexpectedEndOfInput(self.pos, bits, self.remaining)

    def read_bits(self, bits: int, peek: bool = False) -> int:
        """Reads an unsigned integer, most significant bit first.

        Args:
            bits: Number of bits to read (1 to 32).
            peek: Leave the cursor where it was.

        Returns:
            int: The unsigned value of the bits.

        Raises:
            UnexpectedEndOfInput: If fewer than `bits` bits are left.
        """
        _check_width(bits)
        self._require(bits)
        token = f"uint:{bits}"
        if peek:
            return self._stream.peek(token)
        return self._stream.read(token)

    def _read_le(self, count: int, peek: bool) -> int:
        self._require(count * 8)
        start = self._stream.pos
        value = 0
        for i in range(count):
            value |= self.read_bits(8) << (8 * i)
        if peek:
            self._stream.pos = start
        return value

    def read_u8(self, peek: bool = False) -> int:
        return self.read_bits(8, peek)

    def read_i8(self, peek: bool = False) -> int:
        return sign_extend(self.read_bits(8, peek), 8)

    def read_u16(self, peek: bool = False) -> int:
        return self._read_le(2, peek)

    def read_i16(self, peek: bool = False) -> int:
        return sign_extend(self._read_le(2, peek), 16)

    def read_u32(self, peek: bool = False) -> int:
        return self._read_le(4, peek)

    def read_f32(self, peek: bool = False) -> float:
        """Reads four little-endian bytes as an IEEE-754 single."""
        return Bits(uint=self._read_le(4, peek), length=32).float

    def read_fixed_char(self, peek: bool = False) -> str:
        return chr(self.read_u8(peek))

    def read_tag4(self, peek: bool = False) -> str:
        """Reads a four character tag such as a tileset id."""
        self._require(TAG_LENGTH * 8)
        start = self._stream.pos
        tag = "".join(self.read_fixed_char() for _ in range(TAG_LENGTH))
        if peek:
            self._stream.pos = start
        return tag

    def read_tag4_array(self, count: int) -> list[str]:
        """Reads `count` consecutive four character tags.

        The whole array is bounds checked before anything is read, so a
        corrupt count fails fast instead of after a partial read.

        Args:
            count: Number of tags.

        Returns:
            list[str]: The tags, in stream order.
        """
        if count < 0:
            raise ValueError("Tag count must not be negative")
        self._require(count * TAG_LENGTH * 8)
        return [self.read_tag4() for _ in range(count)]

    def read_record(self, fmt: str, size: int) -> list[int]:
        """Reads a fixed size record in one call.

        Args:
            fmt: Comma separated bitstring tokens, e.g. "uintle:16, uint:8".
            size: Record size in bytes, checked before anything is read.

        Returns:
            list[int]: One value per token.
        """
        self._require(size * 8)
        return self._stream.readlist(fmt)


class BitWriter:
    """Append-only writer that owns a growable buffer.

    The backing buffer doubles in size whenever a write would run past its
    end. Once getvalue() has been called the writer is sealed.
    """

    def __init__(self, initial_capacity: int = 1024, strict: bool = False) -> None:
        if initial_capacity <= 0:
            raise ValueError("initial_capacity must be > 0")
        self._bits = BitStream(length=initial_capacity * 8)
        self._pos = 0
        self._sealed = False
        self.strict = strict

    @property
    def pos(self) -> int:
        return self._pos

    @property
    def capacity(self) -> int:
        """Size of the backing buffer in bytes."""
        return len(self._bits) // 8

    @property
    def sealed(self) -> bool:
        return self._sealed

    def _ensure_capacity(self, bits: int) -> None:
        if self._sealed:
            raise ModeViolation("Cannot write to a finalized stream")
        required = self._pos + bits
        if required <= len(self._bits):
            return
        new_length = len(self._bits) * 2
        while new_length < required:
            new_length *= 2
        self._bits.append(Bits(length=new_length - len(self._bits)))

    def write_bits(self, value: int, bits: int, name: str = "value") -> None:
        """Writes an unsigned integer, most significant bit first.

        Args:
            value: Value to write.
            bits: Number of bits to write (1 to 32).
            name: Field name used in error messages.
        """
        _check_width(bits)
        value = fit_bits(value, bits, self.strict, name)
        self._ensure_capacity(bits)
        self._bits.overwrite(Bits(uint=value, length=bits), self._pos)
        self._pos += bits

    def _write_le(self, value: int, count: int) -> None:
        self._ensure_capacity(count * 8)
        for i in range(count):
            self.write_bits((value >> (8 * i)) & 0xFF, 8)

    def write_u8(self, value: int, name: str = "value") -> None:
        self.write_bits(value, 8, name)

    def write_i8(self, value: int, name: str = "value") -> None:
        self.write_bits(fit_signed(value, 8, self.strict, name), 8, name)

    def write_u16(self, value: int, name: str = "value") -> None:
        self._write_le(fit_bits(value, 16, self.strict, name), 2)

    def write_i16(self, value: int, name: str = "value") -> None:
        self._write_le(fit_signed(value, 16, self.strict, name), 2)

    def write_u32(self, value: int, name: str = "value") -> None:
        self._write_le(fit_bits(value, 32, self.strict, name), 4)

    def write_f32(self, value: float, name: str = "value") -> None:
        value = float(value)
        if isfinite(value) and abs(value) > FLOAT32_MAX:
            raise InvalidFieldValue(name, value, "out of float32 range")
        self._write_le(Bits(float=value, length=32).uint, 4)

    def write_fixed_char(self, char: str, name: str = "value") -> None:
        if self.strict and len(char) != 1:
            raise InvalidFieldValue(name, char, "expected a single character")
        code = ord(char[0]) if char else 0
        self.write_bits(code, 8, name)

    def write_tag4(self, tag: str, name: str = "tag") -> None:
        """Writes a four character tag, padding short tags with NUL."""
        if self.strict and len(tag) != TAG_LENGTH:
            raise InvalidFieldValue(name, tag, f"tags are {TAG_LENGTH} characters")
        padded = tag[:TAG_LENGTH].ljust(TAG_LENGTH, "\0")
        self._ensure_capacity(TAG_LENGTH * 8)
        for char in padded:
            self.write_fixed_char(char, name)

    def write_tag4_array(self, tags: list[str], name: str = "tag") -> None:
        for tag in tags:
            self.write_tag4(tag, name)

    def write_record(self, fmt: str, *values: int) -> None:
        """Writes a record packed with a bitstring format string.

        Values must already fit their tokens.
        """
        record = pack(fmt, *values)
        self._ensure_capacity(len(record))
        self._bits.overwrite(record, self._pos)
        self._pos += len(record)

    def getvalue(self) -> bytes:
        """Seals the writer and returns the bytes written so far.

        Returns:
            bytes: The buffer cut to the last partially written byte.
        """
        self._sealed = True
        return self._bits[:ceil(self._pos / 8) * 8].tobytes()

    finalize = getvalue


def open_bitstream(data: bytes | bytearray | memoryview | None = None,
                   **kwargs) -> BitReader | BitWriter:
    """Opens a reader over `data`, or a new writer when no data is given."""
    if data is None:
        return BitWriter(**kwargs)
    if kwargs:
        raise ModeViolation("Writer options given for a read-only stream")
    return BitReader(data)


def require_reader(stream: BitReader | BitWriter) -> BitReader:
    if not isinstance(stream, BitReader):
        raise ModeViolation("Cannot read from a write-only stream")
    return stream


def require_writer(stream: BitReader | BitWriter) -> BitWriter:
    if not isinstance(stream, BitWriter):
        raise ModeViolation("Cannot write to a read-only stream")
    return stream
