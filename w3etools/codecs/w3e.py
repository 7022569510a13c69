"""Encodes and decodes war3map.w3e terrain files."""

import logging
from math import floor, isfinite

from w3etools.codecs.bitstream import BitReader, BitWriter, fit_bits, require_reader, require_writer
from w3etools.errors import (InvalidFieldValue, MalformedGrid, MalformedHeader,
                             UnexpectedEndOfInput, UnsupportedFormat)
from w3etools.models.terrain import Corner, Header, TerrainDocument
from w3etools.options import DEFAULT_OPTIONS, FILE_ID, CodecOptions

logger = logging.getLogger(__name__)

HEIGHT_ZERO = 8192
HEIGHT_SCALE = 4
CORNER_SIZE = 7
CORNER_FORMAT = "uintle:16, uintle:16, uint:8, uint:8, uint:8"

WATER_HEIGHT_MASK = 0x3FFF
MAP_EDGE_MASK = 0xC000
MAP_EDGE_SHIFT = 14


def height_from_raw(raw: int) -> float:
    """Converts a stored height to world units (quarter unit fixed point)."""
    return (raw - HEIGHT_ZERO) / HEIGHT_SCALE


def height_to_raw(height: float, name: str = "height") -> int:
    """Converts a height to its stored value, rounding half up to the nearest quarter.

    Raises:
        InvalidFieldValue: If the height is NaN or infinite.
    """
    scaled = float(height) * HEIGHT_SCALE + HEIGHT_ZERO + 0.5
    if not isfinite(scaled):
        raise InvalidFieldValue(name, height, "not a finite height")
    return floor(scaled)


def decode(data: bytes, options: CodecOptions | None = None) -> TerrainDocument:
    """Decodes a w3e buffer.

    Args:
        data: The complete file contents.
        options: Codec options, defaults used if None.

    Returns:
        TerrainDocument: The header and width * height corners.

    Raises:
        MalformedHeader: If the buffer ends inside the header.
        MalformedGrid: If the buffer ends inside the corner grid.
        UnsupportedFormat: If header validation is on and the tag or version is unknown.
    """
    options = options or DEFAULT_OPTIONS
    bitstream = BitReader(data)

    header = _decode_header(bitstream, options)
    corners = _decode_corners(bitstream, header)

    if bitstream.remaining:
        logger.warning("Ignoring %d trailing bytes after corner grid (offset %d)",
                       bitstream.remaining // 8, bitstream.bytepos)
    logger.debug("Decoded %dx%d terrain (%d ground, %d cliff textures) from %d bytes",
                 header.width, header.height, header.tile_palette_count,
                 header.cliff_tile_palette_count, len(data))
    return TerrainDocument(header=header, corners=corners)


def encode(document: TerrainDocument, options: CodecOptions | None = None) -> bytes:
    """Encodes a terrain document.

    Palette counts are always written from the palette lengths.

    Args:
        document: The terrain to encode.
        options: Codec options, defaults used if None.

    Returns:
        bytes: The file contents.

    Raises:
        InvalidFieldValue: If the corner count does not match the grid size, or
            a value does not fit its field while strict mode is on.
    """
    options = options or DEFAULT_OPTIONS
    header = document.header
    if len(document.corners) != header.corner_count:
        raise InvalidFieldValue("corners", len(document.corners),
                                f"expected {header.width}x{header.height} = {header.corner_count}")

    bitstream = BitWriter(initial_capacity=options.initial_capacity, strict=options.strict)
    _encode_header(bitstream, header)
    for corner in document.corners:
        _encode_corner(bitstream, corner, options.strict)

    data = bitstream.getvalue()
    logger.debug("Encoded %dx%d terrain to %d bytes", header.width, header.height, len(data))
    return data


def _decode_header(bitstream: BitReader, options: CodecOptions) -> Header:
    """Reads the header fields in file order.

    Args:
        bitstream: Reader positioned at the start of the file.
        options: Codec options.

    Returns:
        Header: The decoded header.
    """
    bitstream = require_reader(bitstream)
    try:
        file_id = bitstream.read_tag4()
        version = bitstream.read_u32()
        if options.validate_header:
            _validate_header(file_id, version, options)
        base_tileset = bitstream.read_fixed_char()
        has_custom_tileset = bitstream.read_u32()

        tile_palette_count = bitstream.read_u32()
        tile_palette = bitstream.read_tag4_array(tile_palette_count)

        cliff_tile_palette_count = bitstream.read_u32()
        cliff_tile_palette = bitstream.read_tag4_array(cliff_tile_palette_count)

        width = bitstream.read_u32()
        height = bitstream.read_u32()
        x = bitstream.read_f32()
        y = bitstream.read_f32()
    except UnexpectedEndOfInput as e:
        raise MalformedHeader(e.position, e.requested, e.available,
                              f"Truncated header: {e}") from e

    return Header(file_id=file_id, version=version, base_tileset=base_tileset,
                  has_custom_tileset=has_custom_tileset,
                  tile_palette=tile_palette, cliff_tile_palette=cliff_tile_palette,
                  width=width, height=height, x=x, y=y)


def _validate_header(file_id: str, version: int, options: CodecOptions) -> None:
    if file_id != FILE_ID:
        raise UnsupportedFormat(f"Bad file id {file_id!r}, expected {FILE_ID!r}")
    if version not in options.supported_versions:
        raise UnsupportedFormat(f"Unsupported w3e version {version} "
                                f"(supported: {', '.join(str(v) for v in options.supported_versions)})")


def _decode_corners(bitstream: BitReader, header: Header) -> list[Corner]:
    """Reads width * height corner records, row-major.

    The grid size is checked against the remaining bytes before decoding so a
    bogus header fails without allocating the grid.
    """
    bitstream = require_reader(bitstream)
    total = header.corner_count
    try:
        if total * CORNER_SIZE * 8 > bitstream.remaining:
            raise UnexpectedEndOfInput(bitstream.pos, total * CORNER_SIZE * 8, bitstream.remaining)
        return [_decode_corner(bitstream) for _ in range(total)]
    except UnexpectedEndOfInput as e:
        raise MalformedGrid(e.position, e.requested, e.available,
                            f"Truncated corner grid ({header.width}x{header.height}): {e}") from e


def _decode_corner(bitstream: BitReader) -> Corner:
    ground_raw, water_raw, flags, variations, cliff = bitstream.read_record(CORNER_FORMAT, CORNER_SIZE)

    return Corner(
        ground_height=height_from_raw(ground_raw),
        water_height=height_from_raw(water_raw & WATER_HEIGHT_MASK),
        map_edge=(water_raw & MAP_EDGE_MASK) >> MAP_EDGE_SHIFT,

        ground_texture=flags & 0x0F,
        ramp=bool(flags & 0x10),
        water=bool(flags & 0x20),
        blight=bool(flags & 0x40),
        boundary=bool(flags & 0x80),

        ground_variation=variations & 0x1F,
        cliff_variation=(variations & 0xE0) >> 5,

        cliff_texture=cliff & 0x0F,
        layer_height=(cliff & 0xF0) >> 4,
    )


def _encode_header(bitstream: BitWriter, header: Header) -> None:
    bitstream = require_writer(bitstream)
    bitstream.write_tag4(header.file_id, "file_id")
    bitstream.write_u32(header.version, "version")
    bitstream.write_fixed_char(header.base_tileset, "base_tileset")
    bitstream.write_u32(header.has_custom_tileset, "has_custom_tileset")
    bitstream.write_u32(header.tile_palette_count, "tile_palette_count")
    bitstream.write_tag4_array(header.tile_palette, "tile_palette")
    bitstream.write_u32(header.cliff_tile_palette_count, "cliff_tile_palette_count")
    bitstream.write_tag4_array(header.cliff_tile_palette, "cliff_tile_palette")
    bitstream.write_u32(header.width, "width")
    bitstream.write_u32(header.height, "height")
    bitstream.write_f32(header.x, "x")
    bitstream.write_f32(header.y, "y")


def _encode_corner(bitstream: BitWriter, corner: Corner, strict: bool) -> None:
    """Packs one corner into its 7 byte record.

    Each field is fitted to its own width before it is shifted into place, so
    an oversized value is masked (or rejected in strict mode) rather than
    spilling into the neighbouring field.
    """
    def fit(name: str, bits: int) -> int:
        return fit_bits(getattr(corner, name), bits, strict, name)

    ground_raw = fit_bits(height_to_raw(corner.ground_height, "ground_height"), 16, strict, "ground_height")

    water_raw = fit_bits(height_to_raw(corner.water_height, "water_height"), 14, strict, "water_height")
    water_raw |= fit("map_edge", 2) << MAP_EDGE_SHIFT

    flags = (fit("ground_texture", 4)
             | fit("ramp", 1) << 4
             | fit("water", 1) << 5
             | fit("blight", 1) << 6
             | fit("boundary", 1) << 7)
    variations = fit("ground_variation", 5) | fit("cliff_variation", 3) << 5
    cliff = fit("cliff_texture", 4) | fit("layer_height", 4) << 4

    bitstream.write_record(CORNER_FORMAT, ground_raw, water_raw, flags, variations, cliff)
