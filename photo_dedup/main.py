import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .core import PhotoDedupApp
from .index.store import encode_value
from .models import DedupOptions

LEVELS = [logging.CRITICAL, logging.ERROR, logging.WARNING, logging.INFO,
          logging.DEBUG, config.TRACE, 1]


def parse_verbosity(value: str) -> int:
    """Accepts 0-6 or a level name (ERROR, WARN, INFO, DEBUG, TRACE, FATAL, ALL)."""
    name = value.upper()
    if name in config.VERBOSITY_NAMES:
        return config.VERBOSITY_NAMES[name]
    try:
        level = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid verbosity: {value}")
    return max(0, min(level, len(LEVELS) - 1))


def setup_logging(verbosity: int, log_file: Optional[Path] = None):
    """Sets up logging to the console and, optionally, a file."""
    logging.addLevelName(config.TRACE, "TRACE")

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=LEVELS[verbosity],
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )

    # Silence chatty libraries
    logging.getLogger("exifread").setLevel(logging.ERROR)
    logging.getLogger("PIL").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Photo Dedup: find duplicate photos/videos by capture metadata")

    p.add_argument("-v", "--verbose", type=parse_verbosity, default=config.DEFAULT_VERBOSITY,
                   help="0 is least verbose, 6 is most (or ERROR, WARN, INFO, DEBUG, TRACE, FATAL); default 3")
    p.add_argument("--dir", nargs="+", type=Path, default=[], help="Process directories for tags")
    p.add_argument("--videodir", nargs="+", type=Path, default=[], help="Read in video directories (slow)")
    p.add_argument("--save", type=Path, help="Save the metadata index to a file")
    p.add_argument("--load", nargs="+", type=Path, default=[], help="Load saved metadata index files")
    p.add_argument("--file", type=Path, help="Print the tags and partition key for a single file")

    p.add_argument("--compare", action="store_true", help="Compare files")
    p.add_argument("--stats", action="store_true", help="Show count of photos with same date")
    p.add_argument("--exiftool", action="store_true", help="Lookup data in exiftool when comparing (slow!)")
    p.add_argument("--hash", action="store_true", help="Compare hashes of image portion")

    p.add_argument("--keepmatch", help="Prefer to keep items that match string")
    p.add_argument("--deletematch", nargs="+", default=[], help="Prefer to delete items matching string[s]")
    p.add_argument("--skip", nargs="+", default=[], help="Skip files whose path contains string[s]")
    p.add_argument("--only", action="store_true", help="Only match with keepmatch string as source (requires keepmatch)")
    p.add_argument("--delete", action="store_true", help="Delete duplicates")

    p.add_argument("--movedir", help="Root of directory to move files to (will move to year directory under)")
    p.add_argument("--move", action="store_true", help="Actually move files")
    p.add_argument("--picasa", action="store_true", help="Remove Picasa files if original exists")
    p.add_argument("--nothumb", action="store_true", help="Do not compare thumbnails (incl. Picasa compare)")
    p.add_argument("--undefined", action="store_true", help="Process duplicates even with undefined time")
    p.add_argument("--noyear", action="store_true", help="Allow deleting files even if original not in correct year")
    p.add_argument("--closesize", action="store_true", help="Allow matching items that are within .1%% of size")

    p.add_argument("--archive-root", default=config.ARCHIVE_ROOT,
                   help=f"Directory name holding the year folders (default: {config.ARCHIVE_ROOT})")
    p.add_argument("--log-file", type=Path, default=None, help="Also write the log to this file")
    p.add_argument("--report-csv", type=str, default=None, help="Write wrong-year files to this CSV")
    return p


def options_from_args(args: argparse.Namespace) -> DedupOptions:
    return DedupOptions(
        compare=args.compare,
        stats=args.stats,
        exiftool=args.exiftool,
        hash=args.hash,
        delete=args.delete,
        move=args.move,
        move_dir=args.movedir,
        keep_match=args.keepmatch,
        delete_match=list(args.deletematch),
        skip=list(args.skip),
        only=args.only,
        picasa=args.picasa,
        no_thumb=args.nothumb,
        undefined=args.undefined,
        no_year=args.noyear,
        close_size=args.closesize,
        archive_root=args.archive_root,
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not (args.dir or args.videodir or args.load or args.file):
        parser.print_help()
        return 0

    setup_logging(args.verbose, args.log_file)
    options = options_from_args(args)

    logging.info("=== Photo Dedup Started ===")
    logging.info(f"VERBOSITY: {args.verbose}")
    logging.info(f"OPTIONS: {options}")

    app = PhotoDedupApp(options)
    if args.file:
        described = app.describe_file(args.file)
        if described is None:
            return 1
        print(json.dumps(described, default=encode_value, indent=2))
        if not (args.dir or args.videodir or args.load):
            return 0

    try:
        app.run(
            dirs=args.dir,
            video_dirs=args.videodir,
            load=args.load,
            save=args.save,
            report_csv=args.report_csv,
            detailed_stats=args.verbose >= config.VERBOSITY_NAMES['DEBUG'],
        )
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return 1
    except Exception:
        logging.exception("Fatal error during deduplication.")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
