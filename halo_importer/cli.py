"""Command-line entry point: import action rows from an input directory into Halo.

Usage examples:

    halo-import-actions
    halo-import-actions --only-parse
    halo-import-actions --input-dir input/part-2 --batch-size 20 --half second --reverse
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from types import FrameType
from typing import Any, Sequence

from halo_importer.core.config import LOG_LEVELS, Settings, load_settings
from halo_importer.core.exceptions import ConfigError, HaloImporterException
from halo_importer.core.logging import setup_logging
from halo_importer.inbound.stream import RecordStream
from halo_importer.integrations.halo.client import build_http_client
from halo_importer.models.enums import HalfRange, StreamDirection
from halo_importer.schemas.outcome import RunSummary
from halo_importer.services.importer.pipeline import ImportPipeline, build_context

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_FAILURES = 2
EXIT_INTERRUPTED = 130


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bulk-import action rows from CSV/Excel files into Halo")
    parser.add_argument("--input-dir", default="", help="Directory holding .csv/.xlsx files (else INPUT_DIR)")
    parser.add_argument(
        "--only-parse",
        action="store_true",
        help="Authenticate and check existing IDs, but never submit actions",
    )
    parser.add_argument("--batch-size", type=int, default=None, help="Actions per submission (else BATCH_SIZE)")
    parser.add_argument(
        "--reverse",
        action="store_true",
        help="Walk files, and rows within each file, from last to first",
    )
    parser.add_argument(
        "--half",
        choices=[half.value for half in HalfRange],
        default=None,
        help="Only process the first or second half of the input files",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=list(LOG_LEVELS),
        default=None,
        help="Override LOG_LEVEL",
    )
    parser.add_argument(
        "--probe-tickets",
        dest="probe_tickets",
        action="store_true",
        default=None,
        help="Look up each ticket once before its first submission (else PROBE_TICKETS)",
    )
    parser.add_argument(
        "--no-probe-tickets",
        dest="probe_tickets",
        action="store_false",
        help="Never look up tickets ahead of submission",
    )
    args = parser.parse_args(argv)
    if args.batch_size is not None and args.batch_size < 1:
        parser.error("--batch-size must be >= 1")
    return args


def _settings_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.input_dir:
        overrides["INPUT_DIR"] = args.input_dir
    if args.log_level:
        overrides["LOG_LEVEL"] = args.log_level
    if args.batch_size is not None:
        overrides["BATCH_SIZE"] = args.batch_size
    if args.probe_tickets is not None:
        overrides["PROBE_TICKETS"] = args.probe_tickets
    return overrides


def _raise_interrupt(signum: int, frame: FrameType | None) -> None:
    raise KeyboardInterrupt(f"received signal {signum}")


def exit_code(summary: RunSummary) -> int:
    if summary.interrupted:
        return EXIT_INTERRUPTED
    if summary.failed or summary.parse_errors or summary.unreadable_files:
        return EXIT_FAILURES
    return EXIT_OK


def run(args: argparse.Namespace, settings: Settings) -> RunSummary:
    direction = StreamDirection.reverse if args.reverse else StreamDirection.forward
    half = HalfRange(args.half) if args.half else None
    # input problems surface before the report fetch
    stream = RecordStream.from_directory(Path(settings.INPUT_DIR), direction=direction, half=half)
    logger.info(
        "Selected %s input file(s) from '%s' (direction: %s, half: %s)",
        len(stream),
        settings.INPUT_DIR,
        direction.value,
        half.value if half else "all",
    )

    with build_http_client(settings) as http_client:
        context = build_context(settings, http_client, dry_run=args.only_parse)
        return ImportPipeline(context).run(stream)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        settings = load_settings(**_settings_overrides(args))
    except ConfigError as exc:
        print(f"Failed to load configuration: {exc.message}", file=sys.stderr)
        return EXIT_FATAL

    log_file = setup_logging(settings.LOG_LEVEL, log_dir=settings.LOG_DIR)
    logger.info("Starting %s", settings.APP_NAME)
    logger.info("Configuration loaded successfully")
    if log_file is not None:
        logger.info("Writing run log to %s", log_file)

    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        summary = run(args, settings)
    except KeyboardInterrupt:
        logger.warning("Import interrupted before processing started")
        return EXIT_INTERRUPTED
    except HaloImporterException as exc:
        logger.error("Import aborted: %s", exc.message, extra={"error": exc.to_dict()})
        return EXIT_FATAL
    finally:
        if previous is not None:
            signal.signal(signal.SIGTERM, previous)
    return exit_code(summary)


if __name__ == "__main__":
    raise SystemExit(main())
