import sys

from w3etools.scripts import terrain, texturize

commands = {
    "terrain": terrain.main,
    "texturize": texturize.main,
}


def main() -> int:
    if len(sys.argv) < 2 or sys.argv[1] not in commands:
        print(f"Please specify a script to execute: [{', '.join([k for k in commands.keys()])}]")
        return 1
    script_name = sys.argv[1]
    return commands[script_name](sys.argv[2:])


if __name__ == "__main__":
    sys.exit(main())
