from argparse import ArgumentParser, Namespace
from json import dump, load
from pathlib import Path
import sys

from w3etools.codecs.w3e import decode, encode
from w3etools.models.palette import TexturePalette
from w3etools.models.terrain import TerrainDocument, generate_empty
from w3etools.scripts.common import add_common_arguments, default_output, load_options, run


def start_info(args: Namespace) -> None:
    data = Path(args.input_file).read_bytes()
    doc = decode(data, load_options(args))
    h = doc.header

    print(f"File ID:        {h.file_id} v{h.version}")
    print(f"Base tileset:   {h.base_tileset} (custom: {'yes' if h.has_custom_tileset else 'no'})")
    print(f"Ground tiles:   {h.tile_palette_count} [{', '.join(h.tile_palette)}]")
    print(f"Cliff tiles:    {h.cliff_tile_palette_count} [{', '.join(h.cliff_tile_palette)}]")
    print(f"Size:           {h.width}x{h.height} corners")
    print(f"Origin:         ({h.x:.1f}, {h.y:.1f})")

    if args.preview:
        TexturePalette.load(args.palette).print_terrain_preview(doc)


def start_extract(args: Namespace) -> None:
    if args.output_file is None:
        args.output_file = default_output(args.input_file, ".json")

    data = Path(args.input_file).read_bytes()
    doc = decode(data, load_options(args))

    with Path(args.output_file).open("w", encoding="utf-8") as f:
        dump(doc.to_dict(), f, indent=args.indent)

    print(f"Extracted {doc.width}x{doc.height} terrain from {len(data)} bytes, "
          f"{args.input_file} to {args.output_file}.")


def start_build(args: Namespace) -> None:
    if args.output_file is None:
        args.output_file = default_output(args.input_file, ".w3e")

    with Path(args.input_file).open("r", encoding="utf-8") as f:
        try:
            doc = TerrainDocument.from_dict(load(f))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed terrain JSON {args.input_file}: {e!r}") from e

    encoded = encode(doc, load_options(args))
    Path(args.output_file).write_bytes(encoded)

    print(f"Built {doc.width}x{doc.height} terrain to {len(encoded)} bytes, "
          f"{args.input_file} to {args.output_file}.")


def start_new(args: Namespace) -> None:
    doc = generate_empty(args.width, args.height, args.tileset)
    encoded = encode(doc, load_options(args))
    Path(args.output_file).write_bytes(encoded)

    print(f"Created empty {doc.width}x{doc.height} terrain ({len(encoded)} bytes) at {args.output_file}.")


def build_argparser() -> ArgumentParser:
    # Create the main parser
    parser = ArgumentParser(description='Inspect, extract or build W3E terrain files')
    add_common_arguments(parser)

    # Create subparsers for each mode
    subparsers = parser.add_subparsers(title='Modes', help='Select a mode')

    info_parser = subparsers.add_parser('info', help='Print terrain header')
    info_parser.add_argument('-p', '--preview', action='store_true', help='Draw ground textures')
    info_parser.add_argument('--palette', type=str, default=None, help='Preview palette (*.json)')
    info_parser.add_argument('input_file', type=str, help='Input file (*.w3e)')
    info_parser.set_defaults(func=start_info)

    extract_parser = subparsers.add_parser('extract', help='Extract terrain to JSON')
    extract_parser.add_argument('-o', '--output-file', type=str, help='Output file (*.json)')
    extract_parser.add_argument('--indent', type=int, default=None, help='JSON indent')
    extract_parser.add_argument('input_file', type=str, help='Input file (*.w3e)')
    extract_parser.set_defaults(func=start_extract)

    build_parser = subparsers.add_parser('build', help='Build terrain from JSON')
    build_parser.add_argument('input_file', type=str, help='Input file (*.json)')
    build_parser.add_argument('output_file', nargs='?', type=str, help='Output file (*.w3e)')
    build_parser.set_defaults(func=start_build)

    new_parser = subparsers.add_parser('new', help='Create an empty terrain')
    new_parser.add_argument('-t', '--tileset', type=str, default='O', help='Base tileset character')
    new_parser.add_argument('-o', '--output-file', type=str, default='war3map.w3e', help='Output file (*.w3e)')
    new_parser.add_argument('width', type=int, help='Corners per row')
    new_parser.add_argument('height', type=int, help='Number of rows')
    new_parser.set_defaults(func=start_new)

    return parser


def main(argv: list[str]) -> int:
    return run(build_argparser(), argv)


if __name__ == '__main__':
    sys.exit(main(sys.argv[1:]))
