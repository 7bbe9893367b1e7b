"""Run-level counters and the final immutable summary report."""

from __future__ import annotations

import logging
import time
from typing import Callable

from halo_importer.core.logging import format_number
from halo_importer.models.enums import SkipReason
from halo_importer.schemas.outcome import FailedAction, Outcome, RunSummary

logger = logging.getLogger(__name__)

MAX_LOGGED_FAILURES = 10


class RunSummaryAggregator:
    """`processed` is derived from the three terminal counts, so the identity always holds."""

    def __init__(self, *, dry_run: bool = False, clock: Callable[[], float] = time.monotonic) -> None:
        self.dry_run = dry_run
        self.clock = clock
        self.started = clock()

        self.imported = 0
        self.skipped_existing = 0
        self.skipped_ticket_missing = 0
        self.failed = 0
        self.parse_errors = 0
        self.import_seconds = 0.0
        self.file_times: list[float] = []
        self.unreadable_files: list[str] = []
        self.failures: list[FailedAction] = []
        self._summary: RunSummary | None = None

    @property
    def skipped(self) -> int:
        return self.skipped_existing + self.skipped_ticket_missing

    @property
    def processed(self) -> int:
        return self.imported + self.skipped + self.failed

    @property
    def finalized(self) -> bool:
        return self._summary is not None

    def record(self, action_id: str, outcome: Outcome) -> None:
        self._ensure_open()
        if outcome.is_imported:
            self.imported += 1
            self.import_seconds += outcome.latency
        elif outcome.is_skipped:
            if outcome.skip_reason == SkipReason.ticket_missing:
                self.skipped_ticket_missing += 1
            else:
                self.skipped_existing += 1
        else:
            self.failed += 1
            cause = outcome.cause.value if outcome.cause else "unknown"
            self.failures.append(FailedAction(action_id=action_id, cause=cause, message=outcome.message))

    def record_parse_error(self) -> None:
        self._ensure_open()
        self.parse_errors += 1

    def record_unreadable_file(self, description: str) -> None:
        self._ensure_open()
        self.unreadable_files.append(description)

    def record_file_time(self, seconds: float) -> None:
        self._ensure_open()
        self.file_times.append(seconds)

    def finalize(self, *, in_flight: int = 0, interrupted: bool = False) -> RunSummary:
        if self._summary is not None:
            return self._summary
        runtime = max(self.clock() - self.started, 0.0)
        processed = self.processed
        self._summary = RunSummary(
            processed=processed,
            imported=self.imported,
            skipped=self.skipped,
            skipped_existing=self.skipped_existing,
            skipped_ticket_missing=self.skipped_ticket_missing,
            failed=self.failed,
            parse_errors=self.parse_errors,
            in_flight=in_flight,
            files_processed=len(self.file_times),
            unreadable_files=list(self.unreadable_files),
            failures=list(self.failures),
            total_runtime_seconds=runtime,
            average_import_seconds=self.import_seconds / self.imported if self.imported else 0.0,
            entries_per_minute=processed / runtime * 60.0 if runtime > 0 else 0.0,
            average_file_seconds=sum(self.file_times) / len(self.file_times) if self.file_times else 0.0,
            dry_run=self.dry_run,
            interrupted=interrupted,
        )
        return self._summary

    def _ensure_open(self) -> None:
        if self._summary is not None:
            raise RuntimeError("run summary already finalized")


def log_summary(summary: RunSummary) -> None:
    logger.info("=== Import Summary ===")
    if summary.interrupted:
        logger.warning("Run was interrupted; counts cover the work finished before cancellation")
    logger.info("Total actions processed: %s", format_number(summary.processed))
    logger.info(
        "Actions skipped: %s (already exist: %s, ticket missing: %s)",
        format_number(summary.skipped),
        format_number(summary.skipped_existing),
        format_number(summary.skipped_ticket_missing),
    )
    verb = "would be imported" if summary.dry_run else "successfully imported"
    logger.info("Actions %s: %s", verb, format_number(summary.imported))
    logger.info("Actions failed to import: %s", format_number(summary.failed))
    if summary.parse_errors:
        logger.warning("Rows that could not be parsed: %s", format_number(summary.parse_errors))
    if summary.in_flight:
        logger.warning(
            "Actions in flight at cancellation (remote state unknown, re-fetch existing IDs before retrying): %s",
            format_number(summary.in_flight),
        )
    if summary.unreadable_files:
        logger.warning("Files that could not be read: %s", format_number(len(summary.unreadable_files)))
        for description in summary.unreadable_files:
            logger.warning("  - %s", description)
    for failure in summary.failures[:MAX_LOGGED_FAILURES]:
        logger.warning("  - %s [%s]: %s", failure.action_id, failure.cause, failure.message)
    if len(summary.failures) > MAX_LOGGED_FAILURES:
        logger.warning("  ... and %s more failures", format_number(len(summary.failures) - MAX_LOGGED_FAILURES))
    if summary.dry_run and not summary.failed and not summary.parse_errors and not summary.unreadable_files:
        logger.info(
            "Success: %s/%s actions parsed successfully",
            format_number(summary.imported + summary.skipped),
            format_number(summary.processed),
        )

    if summary.processed > 0:
        runtime = summary.total_runtime_seconds
        logger.info("=== Performance Stats ===")
        logger.info("Total runtime: %.2fs (%.2fm)", runtime, runtime / 60.0)
        logger.info("Time per entry: %.3fs", runtime / summary.processed)
        if summary.imported and not summary.dry_run:
            logger.info("Average time per imported action: %.3fs", summary.average_import_seconds)
        logger.info("Entries per minute: %.1f", summary.entries_per_minute)
        if summary.files_processed:
            logger.info("Average time per file: %.2fs", summary.average_file_seconds)
