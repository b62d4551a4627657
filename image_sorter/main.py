"""
Main entry point for the Image Sorter application.

This module parses the command line, sets up logging and runs the sorter,
printing the sorting and performance reports when the run completes.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .config import SorterConfig
from .errors import FatalConfigError
from .geocoder import DEFAULT_CACHE_SIZE
from .logger import Logger
from .reporting import ReportFormatter
from .sorter import ImageSorter
from .worker_pool import DEFAULT_WORKERS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="image-sorter",
        description=(
            "Copy photos into a Year-Month / Place / Device tree using their "
            "EXIF capture date, GPS position and camera model."
        ),
    )
    parser.add_argument(
        "-s", "--source-dir",
        required=True,
        help="Directory containing the photos to sort (searched recursively).",
    )
    parser.add_argument(
        "-d", "--dest-dir",
        required=True,
        help="Directory receiving the sorted copies (created if missing).",
    )
    parser.add_argument(
        "-w", "--workers",
        type=int,
        default=DEFAULT_WORKERS,
        help=f"Number of concurrent workers (default: {DEFAULT_WORKERS}).",
    )
    parser.add_argument(
        "--no-device",
        action="store_true",
        help="Do not add a camera model level to the destination tree.",
    )
    parser.add_argument(
        "--cache-size",
        type=int,
        default=DEFAULT_CACHE_SIZE,
        help=f"Maximum number of cached place names (default: {DEFAULT_CACHE_SIZE}).",
    )
    parser.add_argument(
        "--user-agent",
        default="ImageSorter/1.0",
        help="User agent sent to the geocoding service.",
    )
    parser.add_argument(
        "--geocode-timeout",
        type=float,
        default=10,
        help="Timeout in seconds for one geocoding request (default: 10).",
    )
    parser.add_argument(
        "--geocode-retries",
        type=int,
        default=0,
        help="Retries after a failed geocoding request (default: 0).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO).",
    )
    parser.add_argument(
        "--log-file",
        metavar="PATH",
        default=None,
        help="Also write log messages to this file.",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar (useful when piping output to log files).",
    )
    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)
    config = SorterConfig.from_args(args)

    logger = Logger(config.log_level, config.log_file)
    log = logger.get_logger(__name__)
    log.info(f"Sorting {config.source_dir} into {config.dest_dir} with {config.workers} workers")

    try:
        report = ImageSorter(config, logger=logger).run()
    except FatalConfigError as e:
        log.error(f"Fatal configuration error: {e}")
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.", file=sys.stderr)
        sys.exit(130)

    formatter = ReportFormatter()
    print(formatter.sorting_summary(report))
    print()
    print(formatter.performance_summary(report))

    if report.total_failures:
        logging.getLogger(__name__).warning(
            f"{report.total_failures} photos were skipped. Check the log for details."
        )
    sys.exit(0)


if __name__ == "__main__":
    main()
