"""
psfx CLI - Expand Command
Usage: python -m cli.commands.expand update.msu [--psf update.psf] -o output_folder
       python -m cli.commands.expand extracted_dir/ --from-dir -o output_folder
"""
import argparse
import sys
from pathlib import Path
from psfx.errors import PsfxError
from psfx.expander.batch_expander import BatchExpander
from psfx.expander.engine import DeltaExpander
from psfx.unpacker.package_unpacker import PackageUnpacker
from psfx.utils.logger import logger, set_verbose


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Extract an update package and rebuild its files from the PSF patch blob"
    )
    parser.add_argument("input", help="Update package, or an extracted directory with --from-dir")
    parser.add_argument("-o", "--output", help="Directory for the reconstructed files")
    parser.add_argument("--psf", help="Path to the patch blob (.psf) if shipped separately")
    parser.add_argument("--from-dir", action="store_true",
                        help="Input is an already extracted directory holding the manifest")
    parser.add_argument("-w", "--workers", type=int, default=None,
                        help="Number of parallel workers (default: from config)")
    parser.add_argument("--max-failures", type=int, default=None,
                        help="Abort after this many failed files")
    parser.add_argument("--no-verify", action="store_true",
                        help="Skip payload and output hash verification")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show per-file details")

    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error(f"Input not found: {input_path}")
        sys.exit(1)

    out_dir = Path(args.output) if args.output else Path.cwd() / f"{input_path.stem}_expanded"
    out_dir.mkdir(parents=True, exist_ok=True)

    verify = False if args.no_verify else None
    batch = BatchExpander(
        expander=DeltaExpander(verify_source_hash=verify, verify_output_hash=verify),
        max_workers=args.workers,
        max_failures=args.max_failures
    )
    unpacker = PackageUnpacker(batch=batch)

    try:
        if args.from_dir:
            summary = unpacker.expand_directory(str(input_path), str(out_dir), patch_blob_path=args.psf)
        else:
            summary = unpacker.extract_with_delta(str(input_path), str(out_dir), patch_blob_path=args.psf)

        if summary['failed'] > 0:
            print(f"\n{summary['failed']} file(s) failed:")
            for f in summary['failures']:
                print(f"   {f['file']}: {f['error_kind']} ({f['error']})")
            sys.exit(1)

        print(f"\n✅ Success! {summary['succeeded']} files restored to: {out_dir}")

    except KeyboardInterrupt:
        print("\n❌ Operation cancelled by user.")
        sys.exit(130)
    except (PsfxError, OSError) as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
