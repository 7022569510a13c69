from argparse import ArgumentParser, Namespace
from pathlib import Path
import sys

from PIL import Image

from w3etools.codecs.w3e import decode, encode
from w3etools.models.palette import TexturePalette, texturize
from w3etools.scripts.common import add_common_arguments, load_options, run


def parse_slots(value: str) -> list[int]:
    """Parses a comma separated slot list such as "0,2,5"."""
    slots = [int(x, 0) for x in value.split(",") if x.strip()]
    if any(not 0 <= s < 16 for s in slots):
        raise ValueError(f"Slots must be between 0 and 15: {value}")
    return slots


def load_pixels(path: str, width: int, height: int) -> list[list[tuple[int, int, int]]]:
    """Loads an image scaled to the terrain grid, as rows of RGB tuples (top row first)."""
    with Image.open(path) as img:
        scaled = img.convert("RGB").resize((width, height))
    px = scaled.load()
    return [[tuple(px[x, y]) for x in range(width)] for y in range(height)]


def start_apply(args: Namespace) -> None:
    if args.output_file is None:
        args.output_file = args.input_file

    options = load_options(args)
    palette = TexturePalette.load(args.palette)
    entries = palette.entries(args.active)
    if not entries:
        raise ValueError("No active slots selected")

    doc = decode(Path(args.input_file).read_bytes(), options)
    pixels = load_pixels(args.image_file, doc.width, doc.height)
    changed = texturize(doc, pixels, entries)

    Path(args.output_file).write_bytes(encode(doc, options))
    if args.preview:
        palette.print_terrain_preview(doc)

    print(f"Mapped {args.image_file} onto {doc.width}x{doc.height} grid with {len(entries)} slot(s), "
          f"{changed} corner(s) changed, saved to {args.output_file}.")


def start_palette(args: Namespace) -> None:
    palette = TexturePalette.load(args.palette)
    palette.print_palette_preview()
    print(f"{len(palette.slots)} slot(s).")


def build_argparser() -> ArgumentParser:
    # Create the main parser
    parser = ArgumentParser(description='Paint W3E ground textures from an image')
    add_common_arguments(parser)

    # Create subparsers for each mode
    subparsers = parser.add_subparsers(title='Modes', help='Select a mode')

    apply_parser = subparsers.add_parser('apply', help='Map image colours to ground textures')
    apply_parser.add_argument('-o', '--output-file', type=str, help='Output file (*.w3e), defaults to input')
    apply_parser.add_argument('-a', '--active', type=parse_slots, default=None,
                              help='Comma separated slots to match against (default: all)')
    apply_parser.add_argument('-P', '--palette', type=str, default=None, help='Palette file (*.json)')
    apply_parser.add_argument('-p', '--preview', action='store_true', help='Draw the result')
    apply_parser.add_argument('input_file', type=str, help='Input file (*.w3e)')
    apply_parser.add_argument('image_file', type=str, help='Reference image')
    apply_parser.set_defaults(func=start_apply)

    palette_parser = subparsers.add_parser('palette', help='Show palette slots')
    palette_parser.add_argument('-P', '--palette', type=str, default=None, help='Palette file (*.json)')
    palette_parser.set_defaults(func=start_palette)

    return parser


def main(argv: list[str]) -> int:
    return run(build_argparser(), argv)


if __name__ == '__main__':
    sys.exit(main(sys.argv[1:]))
