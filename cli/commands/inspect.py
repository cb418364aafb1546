"""
psfx CLI - Inspect Command
Usage: python -m cli.commands.inspect update.msu
"""
import argparse
import sys
from pathlib import Path
from psfx.errors import PsfxError
from psfx.tools.inspector import Inspector
from psfx.utils.logger import logger


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Inspect an express manifest without expanding"
    )
    parser.add_argument("input", help="Manifest (.cix.xml), extracted directory or update package")

    args = parser.parse_args(argv)

    path = Path(args.input)
    if not path.exists():
        logger.error(f"Not found: {path}")
        sys.exit(1)

    try:
        Inspector().inspect(str(path))
    except PsfxError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
