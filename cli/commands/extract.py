"""
psfx CLI - Extract Command
Usage: python -m cli.commands.extract update.msu -o output_folder
"""
import argparse
import sys
from pathlib import Path
from psfx.errors import PsfxError
from psfx.unpacker.package_unpacker import PackageUnpacker
from psfx.utils.logger import logger, set_verbose


def main(argv=None):
    parser = argparse.ArgumentParser(description="Extract the inner cabinet of an update package")
    parser.add_argument("input", help="Path to the update package (.msu / .cab)")
    parser.add_argument("-o", "--output", help="Directory to extract into")
    parser.add_argument("-f", "--force", action="store_true", help="Extract into a non-empty directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show per-entry details")

    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Package not found: {input_path}")
        sys.exit(1)

    out_dir = Path(args.output) if args.output else Path.cwd() / f"{input_path.stem}_extracted"

    if out_dir.exists() and any(out_dir.iterdir()) and not args.force:
        logger.error(f"Output directory is not empty: {out_dir}")
        print("Use -f or --force to overwrite.")
        sys.exit(1)

    try:
        result = PackageUnpacker().extract(str(input_path), str(out_dir))
        print(f"\n✅ Success! {len(result['extracted'])} entries from {result['inner_container']} → {out_dir}")

    except KeyboardInterrupt:
        print("\n❌ Operation cancelled by user.")
        sys.exit(130)
    except (PsfxError, OSError) as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
