import argparse
import logging
import sys
from pathlib import Path

from .config import RunSettings
from .core import TakeoutOrganizerApp
from .database.index import ContentAddressedIndex
from .exceptions import IndexLogError
from .reporting import ReportGenerator


def setup_logging(dest_root: Path, verbose: bool):
    """Sets up logging to both console and a file in the destination."""
    log_level = logging.DEBUG if verbose else logging.INFO

    # Create dest root if it doesn't exist so we can log there
    dest_root.mkdir(parents=True, exist_ok=True)
    log_file = dest_root / "organizer.log"

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("pymediainfo").setLevel(logging.WARNING)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Takeout Organizer: year-bucketed, de-duplicated media library")

    p.add_argument("src", type=Path, help="Extracted export to scan")
    p.add_argument("dest", type=Path, help="Destination library root")

    p.add_argument("--copy", action="store_true", help="Copy files instead of moving them")
    p.add_argument("--suspect-year", type=int, default=None,
                   help="Year treated as contamination (default: current year)")
    p.add_argument("--use-media-property", action="store_true",
                   help="Consult container media properties before filename dates (changes outcomes)")
    p.add_argument("--reconcile", action="store_true",
                   help="Repair index rows whose representative moved without an index update")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    p.add_argument("--skip-dirs-file", type=Path, default=None, help="File containing paths to ignore")
    p.add_argument("--report", action="store_true", help="Generate a status report for the source directory.")
    p.add_argument("--report-csv", type=str, default="organization_report.csv", help="Output path for the report CSV.")

    return p.parse_args(argv)


def load_skip_dirs(skip_file: Path) -> set[Path]:
    if not skip_file or not skip_file.exists():
        return set()

    skips = set()
    with skip_file.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#"):
                skips.add(Path(line).resolve())
    return skips


def build_settings(args) -> RunSettings:
    settings = RunSettings(use_media_property=args.use_media_property, move=not args.copy)
    if args.suspect_year is not None:
        settings.suspect_year = args.suspect_year
    return settings


def main(argv=None):
    args = parse_args(argv)

    # 1. Setup
    dest_root = args.dest.resolve()
    src_root = args.src.resolve()

    setup_logging(dest_root, args.verbose)

    logging.info("=== Takeout Organizer Started ===")
    logging.info(f"Source: {src_root}")
    logging.info(f"Dest:   {dest_root}")

    # 2. Config
    settings = build_settings(args)
    skip_dirs = load_skip_dirs(args.skip_dirs_file) if args.skip_dirs_file else set()

    # Check for report mode
    if args.report:
        logging.info("ENTERING REPORT MODE")
        try:
            index = ContentAddressedIndex(dest_root)
            index.load()
            reporter = ReportGenerator(index)
            reporter.generate_source_report(str(src_root), args.report_csv, skip_dirs=skip_dirs)
            logging.info(f"Report generation complete: {args.report_csv}")
            sys.exit(0)
        except Exception:
            logging.exception("Failed to generate report.")
            sys.exit(1)

    # 3. Execution
    app = TakeoutOrganizerApp(dest_root, settings)

    try:
        if args.reconcile:
            app.reconcile()
        summary = app.organize(src_root, skip_dirs=skip_dirs)
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        sys.exit(1)
    except IndexLogError:
        logging.exception("Index log unusable; aborting.")
        sys.exit(2)
    except Exception:
        logging.exception("Fatal error during organization.")
        sys.exit(1)

    if summary.failed:
        logging.warning(f"{summary.failed} files failed; see {app.bad_log.log_path}")


if __name__ == "__main__":
    main()
