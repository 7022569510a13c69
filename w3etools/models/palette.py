import logging
from dataclasses import asdict, dataclass
from json import load
from pathlib import Path

from colorama import Fore, Style

from w3etools.models.terrain import TerrainDocument

logger = logging.getLogger(__name__)

DEFAULT_PALETTE_FILE = Path(__file__).resolve().parent.parent / "config" / "default_palette.json"
SLOT_COUNT = 16

RGB = tuple[int, int, int]


@dataclass
class PaletteSlot:
    """A ground texture slot and the colour used to draw or match it.

    Attributes:
        id: Four character terrain tile tag.
        color: Preview colour as "#rrggbb".
        label: Human readable name.
    """
    id: str
    color: str
    label: str = ""

    @property
    def rgb(self) -> RGB:
        return hex_to_rgb(self.color)


def hex_to_rgb(color: str) -> RGB:
    value = color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Expected a #rrggbb colour, got {color!r}")
    return tuple(int(value[i:i+2], 16) for i in (0, 2, 4))


def classify_nearest_color(rgb: RGB, entries: list[tuple[int, RGB]], fallback: int | None = None) -> int | None:
    """Finds the palette slot closest to a colour.

    Distance is squared Euclidean distance in RGB space. On a tie the entry
    that comes first in `entries` wins.

    Args:
        rgb: Colour to classify.
        entries: (slot_index, rgb) pairs to choose from.
        fallback: Returned when `entries` is empty.

    Returns:
        int | None: The chosen slot index.
    """
    r, g, b = rgb
    best_slot = fallback
    best_distance = None
    for slot, (er, eg, eb) in entries:
        distance = (r - er) ** 2 + (g - eg) ** 2 + (b - eb) ** 2
        if best_distance is None or distance < best_distance:
            best_distance = distance
            best_slot = slot
    return best_slot


def texturize(document: TerrainDocument, pixels: list[list[RGB]], entries: list[tuple[int, RGB]]) -> int:
    """Sets each corner's ground texture from an image of the same size.

    Image rows run top-down while terrain rows run south to north, so image
    row 0 is applied to the last terrain row.

    Args:
        document: Terrain to modify in place.
        pixels: `height` rows of `width` RGB pixels.
        entries: Active (slot_index, rgb) pairs.

    Returns:
        int: Number of corners whose texture changed.
    """
    width, height = document.width, document.height
    if len(pixels) != height or any(len(row) != width for row in pixels):
        raise ValueError(f"Image must be {width}x{height} pixels to match the terrain grid")

    changed = 0
    for row in range(height):
        image_row = pixels[height - 1 - row]
        for col in range(width):
            corner = document.corners[row * width + col]
            slot = classify_nearest_color(image_row[col], entries, fallback=corner.ground_texture)
            if slot != corner.ground_texture:
                corner.ground_texture = slot
                changed += 1
    logger.debug("Texturized %dx%d grid with %d slots, %d corners changed",
                 width, height, len(entries), changed)
    return changed


class TexturePalette:
    """The 16 ground texture slots and their preview colours."""

    def __init__(self, slots: list[PaletteSlot] | None = None) -> None:
        self.slots = slots if slots is not None else []
        if len(self.slots) > SLOT_COUNT:
            raise ValueError(f"A palette holds at most {SLOT_COUNT} slots, got {len(self.slots)}")

    @classmethod
    def load(cls, path: str | Path | None = None) -> "TexturePalette":
        with Path(path or DEFAULT_PALETTE_FILE).open("r", encoding="utf-8") as f:
            slots = load(f).get("slots", [])
        return cls([PaletteSlot(**s) for s in slots])

    def to_dict(self) -> dict:
        return {"slots": [asdict(s) for s in self.slots]}

    def entries(self, active: list[int] | None = None) -> list[tuple[int, RGB]]:
        """Returns (slot_index, rgb) pairs for matching, in slot order.

        Args:
            active: Slot indices to include. All slots when None.
        """
        return [(i, s.rgb) for i, s in enumerate(self.slots) if active is None or i in active]

    def color_of(self, slot: int) -> str:
        if not self.slots:
            raise ValueError("Palette has no slots")
        return self.slots[slot % len(self.slots)].color

    @staticmethod
    def _fore_for(rgb: RGB) -> str:
        # R*0.299 + G*0.587 + B*0.114
        r, g, b = rgb
        if r*0.299 + g*0.587 + b*0.114 < 128:
            return f"{Fore.WHITE}{Style.BRIGHT}"
        return f"{Fore.BLACK}{Style.BRIGHT}"

    def print_palette_preview(self) -> None:
        for i, slot in enumerate(self.slots):
            r, g, b = slot.rgb
            color_code = f'\033[48;2;{r};{g};{b}m'
            print(f"Slot {i:2}: {color_code}{self._fore_for(slot.rgb)} {slot.id} {Style.RESET_ALL} "
                  f"{slot.color} {slot.label}")

    def print_terrain_preview(self, document: TerrainDocument) -> None:
        """Draws the ground textures as coloured cells, north at the top."""
        for row in reversed(document.rows()):
            line = ""
            for corner in row:
                r, g, b = hex_to_rgb(self.color_of(corner.ground_texture))
                line += f'\033[48;2;{r};{g};{b}m  '
            print(f"{line}{Style.RESET_ALL}")
