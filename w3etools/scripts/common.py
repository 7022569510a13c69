import logging
from argparse import ArgumentParser, Namespace
from pathlib import Path

from colorama import Fore, Style

from w3etools.errors import W3EError
from w3etools.options import CodecOptions


def add_common_arguments(parser: ArgumentParser) -> None:
    parser.add_argument("-v", "--verbose", help="Enable Verbose Mode", action='store_true')
    parser.add_argument("-c", "--config", type=str, default=None, help='Codec options file (*.json)')
    parser.add_argument("--strict", action='store_true',
                        help='Reject out-of-range values instead of masking them')


def setup_logging(args: Namespace) -> None:
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")


def load_options(args: Namespace) -> CodecOptions:
    """Builds codec options from --config and --strict."""
    options = CodecOptions.from_file(args.config) if args.config else CodecOptions()
    if args.strict:
        options = options.with_overrides(strict=True)
    return options


def default_output(input_file: str, suffix: str) -> str:
    return str(Path(input_file).with_suffix(suffix).name)


def run(parser: ArgumentParser, argv: list[str]) -> int:
    """Parses argv and runs the selected mode.

    Returns:
        int: Process exit status.
    """
    args = parser.parse_args(argv)
    if "func" not in args:
        parser.print_help()
        return 1
    setup_logging(args)
    try:
        args.func(args)
    except (W3EError, OSError, ValueError, OverflowError) as e:
        print(f"{Fore.RED}{Style.BRIGHT}Error:{Style.RESET_ALL} {e}")
        return 1
    return 0
