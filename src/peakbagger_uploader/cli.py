#!/usr/bin/env python3
"""
Peakbagger bulk ascent uploader.

Scans GPS track files, finds the summit of each track, matches it to a
catalog peak and records the ascent unless it is already logged.

Requirements:
    pip install gpxpy requests shapely pyproj
    gpsbabel must be on PATH

"""

from typing import List, Optional
import argparse
import logging
import sys

from . import __version__
from .batch import BatchRunner
from .catalog import CatalogClient
from .config import (
    DEFAULT_API_TIMEOUT,
    DEFAULT_API_URL,
    DEFAULT_SIMPLIFY_COUNT,
    UploaderConfig,
)
from .errors import InfrastructureError
from .metrics import collect_metrics, log_metrics

# Configure logging
logger = logging.getLogger("peakbagger_uploader")


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command-line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Upload ascents from GPS tracks to the peak catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--username",
        type=str,
        default="",
        help="Peakbagger username",
    )
    parser.add_argument(
        "--password",
        type=str,
        default="",
        help="Peakbagger password",
    )
    parser.add_argument(
        "--filename",
        type=str,
        default=None,
        help="Input GPS track file (takes precedence over --directory)",
    )
    parser.add_argument(
        "--directory",
        type=str,
        default=None,
        help="Input directory of GPS track files",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Dry run, don't upload ascents",
    )
    parser.add_argument(
        "--retry",
        action="store_true",
        help="Retry files that failed in earlier runs",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set logging level (default: INFO)",
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        help="Output structured metrics after processing",
    )
    parser.add_argument(
        "--api-url",
        type=str,
        default=DEFAULT_API_URL,
        help=f"Peak catalog API base URL (default: {DEFAULT_API_URL})",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_API_TIMEOUT,
        help=f"Catalog request timeout in seconds (default: {DEFAULT_API_TIMEOUT})",
    )
    parser.add_argument(
        "--simplify-count",
        type=int,
        default=DEFAULT_SIMPLIFY_COUNT,
        help=f"Maximum points kept per converted track (default: {DEFAULT_SIMPLIFY_COUNT})",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"peakbagger-uploader {__version__}",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> UploaderConfig:
    """Build the uploader configuration from parsed arguments."""
    return UploaderConfig(
        username=args.username,
        password=args.password,
        filename=args.filename or None,
        directory=None if args.filename else args.directory,
        dry_run=args.dry_run,
        retry=args.retry,
        log_level=args.log_level,
        metrics=args.metrics,
        api_url=args.api_url,
        timeout=args.timeout,
        simplify_count=args.simplify_count,
    )


def setup_logging(log_level: str) -> None:
    """Setup logging configuration."""
    level = getattr(logging, log_level)

    # Create formatter
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Create console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # Configure the root logger so all modules inherit the configuration
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Suppress overly verbose third-party logging
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)


def main(argv: Optional[List[str]] = None) -> None:
    """
    Parses command-line arguments and uploads ascents for the given
    file or directory.
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.filename and not args.directory:
        parser.print_help()
        sys.exit(1)

    config = config_from_args(args)
    setup_logging(config.log_level)
    logger.info("Started!")

    client = CatalogClient(api_url=config.api_url, timeout=config.timeout)
    runner = BatchRunner(config, client)

    try:
        summary = runner.run()
    except InfrastructureError as e:
        logger.error(f"{e}")
        sys.exit(1)

    log_metrics(collect_metrics(summary, runner.track_counts), config.metrics)

    # A single file's failure is the whole run's failure
    if config.filename and summary.failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
