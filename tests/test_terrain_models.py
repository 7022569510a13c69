import pytest

from w3etools.codecs.w3e import decode, encode
from w3etools.models.terrain import Corner, Header, TerrainDocument, generate_empty


def test_generate_empty():
    doc = generate_empty(5, 3, "L")
    h = doc.header
    assert h.file_id == "W3ER"
    assert h.version == 11
    assert h.base_tileset == "L"
    assert h.tile_palette == ["Oaby"]
    assert h.cliff_tile_palette == ["Oclm"]
    assert (h.x, h.y) == (-256.0, -128.0)
    assert len(doc.corners) == 15
    assert all(c == Corner(layer_height=2) for c in doc.corners)
    assert decode(encode(doc)) == doc


def test_generate_empty_rejects_bad_size():
    with pytest.raises(ValueError):
        generate_empty(0, 4)


def test_corners_are_independent():
    doc = generate_empty(2, 2)
    doc.corners[0].ground_texture = 5
    assert doc.corners[1].ground_texture == 0


def test_grid_addressing():
    doc = generate_empty(3, 2)
    for i, c in enumerate(doc.corners):
        c.ground_variation = i
    assert doc.index_of(1, 2) == 5
    assert doc.corner_at(1, 0).ground_variation == 3
    assert [[c.ground_variation for c in row] for row in doc.rows()] == [[0, 1, 2], [3, 4, 5]]
    with pytest.raises(IndexError):
        doc.index_of(2, 0)
    with pytest.raises(IndexError):
        doc.corner_at(0, -1)


def test_palette_counts_follow_palettes():
    h = Header(tile_palette=["Ldrt", "Lgrs"], cliff_tile_palette=[])
    assert h.tile_palette_count == 2
    assert h.cliff_tile_palette_count == 0
    h.tile_palette.append("Lrok")
    assert h.tile_palette_count == 3


def test_dict_roundtrip():
    doc = generate_empty(2, 2, "O")
    doc.corners[3].water = True
    doc.corners[3].water_height = -1.5
    d = doc.to_dict()
    assert d["header"]["width"] == 2
    assert d["corners"][3]["water"] is True
    assert TerrainDocument.from_dict(d) == doc
