import logging

import pytest

from w3etools.codecs.bitstream import BitReader, BitWriter
from w3etools.codecs.w3e import (_decode_header, _encode_header, decode, encode, height_from_raw,
                                 height_to_raw)
from w3etools.errors import (InvalidFieldValue, MalformedGrid, MalformedHeader, ModeViolation,
                             UnexpectedEndOfInput, UnsupportedFormat)
from w3etools.models.terrain import Corner, Header, TerrainDocument
from w3etools.options import DEFAULT_OPTIONS, CodecOptions

SCENARIO_BYTES = (
    b"W3ER"
    b"\x0b\x00\x00\x00"   # version 11
    b"O"
    b"\x00\x00\x00\x00"   # no custom tileset
    b"\x01\x00\x00\x00" b"Oaby"
    b"\x01\x00\x00\x00" b"Oclm"
    b"\x02\x00\x00\x00"   # width
    b"\x01\x00\x00\x00"   # height
    b"\x00\x00\x00\xc3"   # x = -128.0
    b"\x00\x00\x00\x00"   # y = 0.0
    b"\x00\x20\x00\x20\x03\x00\x20"
    b"\x00\x20\x00\x20\x03\x00\x20"
)

CORNER_MAXIMUMS = {
    "map_edge": 3,
    "ground_texture": 15,
    "ramp": True,
    "water": True,
    "blight": True,
    "boundary": True,
    "ground_variation": 31,
    "cliff_variation": 7,
    "cliff_texture": 15,
    "layer_height": 15,
}


def scenario_document() -> TerrainDocument:
    header = Header(file_id="W3ER", version=11, base_tileset="O", has_custom_tileset=0,
                    tile_palette=["Oaby"], cliff_tile_palette=["Oclm"],
                    width=2, height=1, x=-128.0, y=0.0)
    corners = [Corner(ground_texture=3, layer_height=2) for _ in range(2)]
    return TerrainDocument(header=header, corners=corners)


def single_corner_document(corner: Corner) -> TerrainDocument:
    header = Header(tile_palette=["Ldrt"], cliff_tile_palette=["CLdi"], width=1, height=1)
    return TerrainDocument(header=header, corners=[corner])


def varied_document(width: int = 5, height: int = 4) -> TerrainDocument:
    header = Header(file_id="W3ER", version=11, base_tileset="L", has_custom_tileset=1,
                    tile_palette=["Ldrt", "Ldro", "Lgrs", "Lrok"],
                    cliff_tile_palette=["CLdi", "CLgr"],
                    width=width, height=height, x=-256.0, y=384.5)
    corners = []
    for i in range(width * height):
        corners.append(Corner(
            ground_height=(i * 7 % 40 - 20) * 0.25,
            water_height=-89.5 + i * 0.75,
            map_edge=i % 4,
            ground_texture=i % 16,
            ramp=bool(i & 1),
            water=bool(i & 2),
            blight=bool(i & 4),
            boundary=bool(i & 8),
            ground_variation=(i * 3) % 32,
            cliff_variation=i % 8,
            cliff_texture=(15 - i) % 16,
            layer_height=(i * 5) % 16,
        ))
    return TerrainDocument(header=header, corners=corners)


def test_scenario_encodes_to_expected_bytes():
    data = encode(scenario_document())
    assert len(data) == 45 + 2 * 7
    assert data == SCENARIO_BYTES


def test_scenario_roundtrip():
    doc = decode(encode(scenario_document()))
    assert doc == scenario_document()
    assert [c.ground_texture for c in doc.corners] == [3, 3]
    assert doc.header.tile_palette_count == 1
    assert doc.header.cliff_tile_palette_count == 1


def test_varied_roundtrip():
    doc = varied_document()
    decoded = decode(encode(doc))
    assert decoded == doc
    assert decoded.header.tile_palette_count == 4
    assert decoded.header.cliff_tile_palette_count == 2


def test_empty_palettes_and_grid():
    doc = TerrainDocument(header=Header(width=0, height=0))
    data = encode(doc)
    assert len(data) == 37
    assert decode(data) == doc


def test_height_fixed_point():
    assert height_to_raw(0.0) == 8192
    assert height_from_raw(8192) == 0.0
    assert height_to_raw(-2048.0) == 0
    assert height_to_raw(1.125) == 8197
    assert height_to_raw(-1.125) == 8188

    for value in (-512.75, -0.25, 0.5, 13.25, 2047.75):
        doc = decode(encode(single_corner_document(Corner(ground_height=value, water_height=value))))
        assert doc.corners[0].ground_height == value
        assert doc.corners[0].water_height == value


def test_heights_round_to_nearest_quarter():
    doc = decode(encode(single_corner_document(Corner(ground_height=1.1, water_height=-3.4))))
    assert doc.corners[0].ground_height == 1.0
    assert doc.corners[0].water_height == -3.5


@pytest.mark.parametrize("name,value", CORNER_MAXIMUMS.items())
def test_bitfield_isolation(name, value):
    corner = Corner(**{name: value})
    decoded = decode(encode(single_corner_document(corner))).corners[0]
    assert decoded == corner


def test_map_edge_with_full_water_range():
    corner = Corner(water_height=height_from_raw(0x3FFF), map_edge=3)
    decoded = decode(encode(single_corner_document(corner))).corners[0]
    assert decoded.water_height == 2047.75
    assert decoded.map_edge == 3

    corner = Corner(water_height=height_from_raw(0), map_edge=2)
    decoded = decode(encode(single_corner_document(corner))).corners[0]
    assert decoded.water_height == -2048.0
    assert decoded.map_edge == 2


def test_ground_height_full_range():
    corner = Corner(ground_height=height_from_raw(0xFFFF))
    assert decode(encode(single_corner_document(corner))).corners[0] == corner


def test_oversized_values_are_masked():
    corner = Corner(layer_height=0x13, cliff_texture=0, ground_variation=33, cliff_variation=0,
                    water_height=2048.0, map_edge=1)
    decoded = decode(encode(single_corner_document(corner))).corners[0]
    assert decoded.layer_height == 3
    assert decoded.cliff_texture == 0
    assert decoded.ground_variation == 1
    assert decoded.cliff_variation == 0
    assert decoded.water_height == -2048.0
    assert decoded.map_edge == 1


def test_oversized_values_rejected_in_strict_mode():
    strict = CodecOptions(strict=True)
    with pytest.raises(InvalidFieldValue) as exc:
        encode(single_corner_document(Corner(layer_height=16)), strict)
    assert exc.value.field == "layer_height"
    with pytest.raises(InvalidFieldValue):
        encode(single_corner_document(Corner(water_height=2048.0)), strict)
    with pytest.raises(InvalidFieldValue):
        encode(single_corner_document(Corner(ground_height=-2048.25)), strict)


def test_corner_count_must_match_grid():
    doc = scenario_document()
    doc.corners.pop()
    with pytest.raises(InvalidFieldValue):
        encode(doc)


def test_truncated_grid_fails():
    data = encode(varied_document())
    for cut in (1, 3, 7, 40):
        with pytest.raises(MalformedGrid) as exc:
            decode(data[:-cut])
        assert isinstance(exc.value, UnexpectedEndOfInput)
        assert isinstance(exc.value.__cause__, UnexpectedEndOfInput)


def test_truncated_header_fails():
    data = encode(scenario_document())
    for size in (0, 3, 9, 20, 44):
        with pytest.raises(MalformedHeader):
            decode(data[:size])


def test_bogus_palette_count_fails_fast():
    data = bytearray(encode(scenario_document()))
    data[13:17] = b"\xff\xff\xff\xff"
    with pytest.raises(MalformedHeader):
        decode(bytes(data))


def test_bogus_grid_size_fails_fast():
    data = bytearray(encode(scenario_document()))
    data[33:37] = b"\xff\xff\x00\x00"
    with pytest.raises(MalformedGrid):
        decode(bytes(data))


def test_header_validation():
    data = bytearray(encode(scenario_document()))
    data[0:4] = b"W3EX"
    with pytest.raises(UnsupportedFormat):
        decode(bytes(data))
    assert decode(bytes(data), CodecOptions(validate_header=False)).header.file_id == "W3EX"

    data = bytearray(encode(scenario_document()))
    data[4:8] = (12).to_bytes(4, "little")
    with pytest.raises(UnsupportedFormat):
        decode(bytes(data))
    assert decode(bytes(data), CodecOptions(supported_versions=(11, 12))).header.version == 12


def test_trailing_bytes_are_ignored(caplog):
    with caplog.at_level(logging.WARNING, logger="w3etools.codecs.w3e"):
        doc = decode(encode(scenario_document()) + b"\x00\x00")
    assert doc == scenario_document()
    assert "trailing" in caplog.text


def test_codec_steps_reject_wrong_stream_direction():
    with pytest.raises(ModeViolation):
        _decode_header(BitWriter(), DEFAULT_OPTIONS)
    with pytest.raises(ModeViolation):
        _encode_header(BitReader(SCENARIO_BYTES), scenario_document().header)


def test_in_place_edit_roundtrip():
    doc = decode(SCENARIO_BYTES)
    doc.corner_at(0, 1).ground_texture = 9
    doc.corner_at(0, 1).blight = True
    again = decode(encode(doc))
    assert again.corners[0].ground_texture == 3
    assert again.corners[1].ground_texture == 9
    assert again.corners[1].blight is True


@pytest.mark.parametrize("name", ["ground_height", "water_height"])
@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), 1e308])
def test_non_finite_heights_rejected(name, value):
    corner = Corner(**{name: value})
    with pytest.raises(InvalidFieldValue) as exc:
        encode(single_corner_document(corner))
    assert exc.value.field == name


def test_large_grid_roundtrip():
    header = Header(tile_palette=["Ldrt"], cliff_tile_palette=["CLdi"], width=64, height=64)
    doc = TerrainDocument(header,
                          [Corner(ground_height=(i % 50) * 0.25, ground_texture=i % 16,
                                  cliff_variation=i % 8, map_edge=i % 4)
                           for i in range(64 * 64)])
    data = encode(doc, CodecOptions(initial_capacity=1))
    assert len(data) == 45 + 64 * 64 * 7
    assert decode(data) == doc
