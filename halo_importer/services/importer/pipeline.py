"""Run context and the sequential import pipeline driving one process."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

import httpx

from halo_importer.core.config import Settings
from halo_importer.core.exceptions import AuthError, DeserializationError, FileReadError, HaloImporterException
from halo_importer.core.logging import format_number
from halo_importer.core.rate_limit import RequestThrottle
from halo_importer.inbound.stream import InputFile, RecordStream, parse_row
from halo_importer.integrations.halo.auth import TokenManager
from halo_importer.integrations.halo.client import HaloClient
from halo_importer.models.enums import FailureCause, SkipReason, StreamDirection, TicketCheck
from halo_importer.schemas.action import ActionRecord
from halo_importer.schemas.outcome import Outcome, RunSummary
from halo_importer.services.importer.batching import Batch, BatchAssembler
from halo_importer.services.importer.existing_ids import ExistingIdIndex, report_sources
from halo_importer.services.importer.progress import ProgressTracker
from halo_importer.services.importer.submission import Submitter
from halo_importer.services.importer.summary import RunSummaryAggregator, log_summary
from halo_importer.services.importer.tickets import TicketAvailabilityTracker, TicketProbe

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    """All mutable state of one run. Nothing here is shared between processes."""

    settings: Settings
    index: ExistingIdIndex
    tracker: TicketAvailabilityTracker
    submitter: Submitter | None
    aggregator: RunSummaryAggregator
    batch_size: int = 1
    dry_run: bool = False
    # first copy of each attempted id -> its outcome; None while its batch is still pending
    attempted: dict[str, Outcome | None] = field(default_factory=dict)


def repeat_outcome(first: Outcome) -> Outcome:
    """Outcome for a later copy of an id whose first copy was already attempted."""
    if first.is_failed:
        return Outcome.failed(first.cause or FailureCause.remote_error, f"repeat of a failed action: {first.message}")
    if first.is_skipped and first.skip_reason is not None:
        return Outcome.skipped(first.skip_reason)
    return Outcome.skipped(SkipReason.already_exists)


def _ticket_probe(client: HaloClient, tokens: TokenManager) -> TicketProbe:
    def probe(ticket_id: int) -> bool:
        try:
            return client.ticket_exists(ticket_id, tokens.ensure_valid())
        except httpx.HTTPError as exc:
            # leave the decision to the submission response
            logger.warning("Ticket probe failed for ticket %s: %s", ticket_id, exc)
            return True

    return probe


def build_context(
    settings: Settings,
    http_client: httpx.Client,
    *,
    dry_run: bool = False,
    batch_size: int | None = None,
    probe_tickets: bool | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> RunContext:
    """Authenticate and build the existing-ID index; any failure here aborts the run before processing."""
    client = HaloClient(settings, http_client)
    tokens = TokenManager.from_settings(settings, http_client)
    tokens.ensure_valid()
    logger.info("Authentication successful")

    index = ExistingIdIndex.build(report_sources(client, tokens))

    probe = probe_tickets if probe_tickets is not None else settings.PROBE_TICKETS
    tracker = TicketAvailabilityTracker(_ticket_probe(client, tokens) if probe and not dry_run else None)
    submitter = None
    if not dry_run:
        throttle = RequestThrottle(settings.request_delay_seconds)
        submitter = Submitter(client, tokens, tracker, throttle, clock=clock)
    return RunContext(
        settings=settings,
        index=index,
        tracker=tracker,
        submitter=submitter,
        aggregator=RunSummaryAggregator(dry_run=dry_run, clock=clock),
        batch_size=batch_size or settings.BATCH_SIZE,
        dry_run=dry_run,
    )


class ImportPipeline:
    """Drains the record stream in order: dedup, ticket check, batch, submit, record."""

    def __init__(self, context: RunContext, *, clock: Callable[[], float] = time.monotonic) -> None:
        self.context = context
        self.clock = clock
        self.assembler = BatchAssembler(context.batch_size)
        self._in_flight: Batch = ()
        self._repeats: dict[str, int] = {}

    def run(self, stream: RecordStream) -> RunSummary:
        """Process every file and return the finalized summary.

        Interruption finalizes with whatever was accumulated; fatal errors
        finalize, log the summary and propagate.
        """
        files = list(stream)
        aggregator = self.context.aggregator
        mode = "PARSE-ONLY" if self.context.dry_run else "IMPORT"
        logger.info(
            "Starting %s run over %s file(s) with batch size %s",
            mode,
            len(files),
            self.context.batch_size,
        )
        try:
            for position, input_file in enumerate(files, start=1):
                self._process_file(input_file, position, len(files), stream.direction)
        except KeyboardInterrupt:
            logger.warning("Import interrupted; finalizing summary with the work accumulated so far")
            summary = aggregator.finalize(in_flight=len(self._in_flight), interrupted=True)
            log_summary(summary)
            return summary
        except HaloImporterException as exc:
            logger.error("Fatal error, aborting run: %s", exc.message)
            log_summary(aggregator.finalize(in_flight=len(self._in_flight)))
            raise
        except Exception:
            logger.exception("Unexpected error, aborting run")
            log_summary(aggregator.finalize(in_flight=len(self._in_flight)))
            raise

        summary = aggregator.finalize()
        log_summary(summary)
        return summary

    def _process_file(
        self,
        input_file: InputFile,
        position: int,
        total_files: int,
        direction: StreamDirection,
    ) -> None:
        started = self.clock()
        try:
            rows = input_file.load_rows(direction)
        except FileReadError as exc:
            logger.error("Skipping file %s of %s '%s': %s", position, total_files, input_file.name, exc.message)
            self.context.aggregator.record_unreadable_file(f"{input_file.name}: {exc.message}")
            return

        settings = self.context.settings
        progress = ProgressTracker(
            total=len(rows),
            every_records=settings.PROGRESS_EVERY_RECORDS,
            interval_seconds=settings.PROGRESS_INTERVAL_SECONDS,
            clock=self.clock,
        )
        progress.label = f"sheet {position}/{total_files} '{input_file.name}'"
        logger.info(
            "Processing sheet %s of %s: %s file '%s' (%s rows)",
            position,
            total_files,
            input_file.kind,
            input_file.name,
            format_number(len(rows)),
        )

        for row_number, values in rows:
            try:
                record = parse_row(values, file_name=input_file.name, row_number=row_number)
            except DeserializationError as exc:
                logger.error("Failed to deserialize row: %s", exc.message)
                self.context.aggregator.record_parse_error()
                continue
            self._handle(record, progress)

        final = self.assembler.flush()
        if final:
            self._submit(final, progress)
        progress.flush_skips()

        duration = self.clock() - started
        aggregator = self.context.aggregator
        aggregator.record_file_time(duration)
        average = sum(aggregator.file_times) / len(aggregator.file_times)
        logger.info(
            "Completed sheet %s of %s: %s file '%s' | %s processed, %s imported, %s skipped, %s failed in %.1fs | avg sheet time: %.1fs",
            position,
            total_files,
            input_file.kind,
            input_file.name,
            format_number(progress.processed),
            format_number(progress.imported),
            format_number(progress.skipped),
            format_number(progress.failed),
            duration,
            average,
        )

    def _handle(self, record: ActionRecord, progress: ProgressTracker) -> None:
        context = self.context
        action_id = record.action_id
        if action_id in context.index:
            self._record(action_id, Outcome.skipped(SkipReason.already_exists), progress)
            return
        if action_id in context.attempted:
            logger.debug("Action ID %s appears more than once in the input; keeping the first", action_id)
            first = context.attempted[action_id]
            if first is None:
                self._repeats[action_id] = self._repeats.get(action_id, 0) + 1
            else:
                self._record(action_id, repeat_outcome(first), progress)
            return
        if context.tracker.check(record.ticket_id) == TicketCheck.skip_missing:
            self._record(action_id, Outcome.skipped(SkipReason.ticket_missing), progress)
            return

        context.attempted[action_id] = None
        if context.dry_run:
            self._settle(action_id, Outcome.imported(dry_run=True), progress)
            return
        batch = self.assembler.add(record)
        if batch:
            self._submit(batch, progress)

    def _submit(self, batch: Batch, progress: ProgressTracker) -> None:
        submitter = self.context.submitter
        if submitter is None:
            raise RuntimeError("no submitter configured for an import run")
        self._in_flight = batch
        try:
            results = submitter.submit(batch)
        except AuthError as exc:
            self._in_flight = ()
            for record in batch:
                self._settle(record.action_id, Outcome.failed(FailureCause.auth_error, exc.message), progress)
            raise
        self._in_flight = ()
        for record, outcome in results:
            self._settle(record.action_id, outcome, progress)

    def _settle(self, action_id: str, outcome: Outcome, progress: ProgressTracker) -> None:
        """Record an attempted id, then any repeats of it that arrived while its batch was pending."""
        self.context.attempted[action_id] = outcome
        self._record(action_id, outcome, progress)
        for _ in range(self._repeats.pop(action_id, 0)):
            self._record(action_id, repeat_outcome(outcome), progress)

    def _record(self, action_id: str, outcome: Outcome, progress: ProgressTracker) -> None:
        self.context.aggregator.record(action_id, outcome)
        progress.observe(action_id, outcome)
