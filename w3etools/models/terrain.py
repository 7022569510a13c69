from dataclasses import asdict, dataclass, field

from w3etools.options import FILE_ID


@dataclass
class Header:
    """W3E file header.

    Attributes:
        file_id: Four character file tag, "W3ER" for valid files.
        version: Format version.
        base_tileset: Single character tileset id (e.g. 'L' Lordaeron Summer).
        has_custom_tileset: Non-zero when the map uses custom tilesets.
        tile_palette: Ground texture tags, indexed by Corner.ground_texture.
        cliff_tile_palette: Cliff texture tags, indexed by Corner.cliff_texture.
        width: Number of corners per row.
        height: Number of rows.
        x: World X of the bottom-left corner.
        y: World Y of the bottom-left corner.
    """
    file_id: str = FILE_ID
    version: int = 11
    base_tileset: str = "L"
    has_custom_tileset: int = 0
    tile_palette: list[str] = field(default_factory=list)
    cliff_tile_palette: list[str] = field(default_factory=list)
    width: int = 0
    height: int = 0
    x: float = 0.0
    y: float = 0.0

    @property
    def tile_palette_count(self) -> int:
        return len(self.tile_palette)

    @property
    def cliff_tile_palette_count(self) -> int:
        return len(self.cliff_tile_palette)

    @property
    def corner_count(self) -> int:
        return self.width * self.height


@dataclass
class Corner:
    """One tilepoint of the terrain grid.

    Heights are in quarter units. Bit widths are fixed by the file format:
    map_edge 2, ground_texture 4, ground_variation 5, cliff_variation 3,
    cliff_texture 4, layer_height 4, each flag 1.
    """
    ground_height: float = 0.0
    water_height: float = 0.0
    map_edge: int = 0
    ground_texture: int = 0
    ramp: bool = False
    water: bool = False
    blight: bool = False
    boundary: bool = False
    ground_variation: int = 0
    cliff_variation: int = 0
    cliff_texture: int = 0
    layer_height: int = 0


@dataclass
class TerrainDocument:
    """A decoded terrain: header plus a flat, row-major corner grid.

    Row 0 is the southern edge of the map, so anything drawing the grid
    top-down has to flip rows.
    """
    header: Header = field(default_factory=Header)
    corners: list[Corner] = field(default_factory=list)

    @property
    def width(self) -> int:
        return self.header.width

    @property
    def height(self) -> int:
        return self.header.height

    def index_of(self, row: int, col: int) -> int:
        if not (0 <= row < self.height and 0 <= col < self.width):
            raise IndexError(f"Corner ({row}, {col}) outside {self.width}x{self.height} grid")
        return row * self.width + col

    def corner_at(self, row: int, col: int) -> Corner:
        return self.corners[self.index_of(row, col)]

    def rows(self) -> list[list[Corner]]:
        """Returns the grid as a list of rows, southern row first."""
        return [self.corners[r * self.width:(r + 1) * self.width] for r in range(self.height)]

    def to_dict(self) -> dict:
        return {"header": asdict(self.header),
                "corners": [asdict(c) for c in self.corners]}

    @staticmethod
    def from_dict(d: dict) -> "TerrainDocument":
        h = d["header"]
        header = Header(
            file_id=str(h.get("file_id", FILE_ID)),
            version=int(h.get("version", 11)),
            base_tileset=str(h.get("base_tileset", "L")),
            has_custom_tileset=int(h.get("has_custom_tileset", 0)),
            tile_palette=[str(t) for t in h.get("tile_palette", [])],
            cliff_tile_palette=[str(t) for t in h.get("cliff_tile_palette", [])],
            width=int(h["width"]),
            height=int(h["height"]),
            x=float(h.get("x", 0.0)),
            y=float(h.get("y", 0.0)),
        )
        return TerrainDocument(header=header, corners=[Corner(**c) for c in d.get("corners", [])])


def generate_empty(width: int, height: int, tileset: str = "O") -> TerrainDocument:
    """Creates a flat map with a single ground and cliff texture.

    The map is centred on the world origin, 128 world units per corner.

    Args:
        width: Corners per row.
        height: Number of rows.
        tileset: Base tileset character.

    Returns:
        TerrainDocument: A new document with width * height default corners.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Map dimensions must be positive, got {width}x{height}")
    header = Header(
        file_id=FILE_ID,
        version=11,
        base_tileset=tileset,
        has_custom_tileset=0,
        tile_palette=["Oaby"],
        cliff_tile_palette=["Oclm"],
        width=width,
        height=height,
        x=float(-(width // 2) * 128),
        y=float(-(height // 2) * 128),
    )
    corners = [Corner(layer_height=2) for _ in range(width * height)]
    return TerrainDocument(header=header, corners=corners)
