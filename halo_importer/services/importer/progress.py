"""Periodic progress/ETA status lines and coalesced skip logging."""

from __future__ import annotations

import logging
import time
from collections import deque
from typing import Callable, Deque

from halo_importer.core.logging import format_number
from halo_importer.models.enums import SkipReason
from halo_importer.schemas.outcome import Outcome

logger = logging.getLogger(__name__)

ROLLING_WINDOW = 500


class ProgressTracker:
    """Emits a status line every `every_records` outcomes or `interval_seconds`, whichever comes first.

    ETA is remaining records times the rolling average latency of imported
    outcomes; skip latency never enters the average.
    """

    def __init__(
        self,
        *,
        total: int | None = None,
        every_records: int = 300,
        interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.total = total
        self.every_records = max(every_records, 1)
        self.interval_seconds = interval_seconds
        self.clock = clock
        self.label = ""

        self.processed = 0
        self.imported = 0
        self.skipped = 0
        self.failed = 0
        self._latencies: Deque[float] = deque(maxlen=ROLLING_WINDOW)

        self._since_emit = 0
        self._last_emit = clock()
        self._skip_run: dict[SkipReason, int] = {}
        self._skip_first = ""
        self._skip_last = ""

    def observe(self, action_id: str, outcome: Outcome) -> str | None:
        self.processed += 1
        self._since_emit += 1
        if outcome.is_skipped:
            self.skipped += 1
            self._extend_skip_run(action_id, outcome)
        else:
            self.flush_skips()
            if outcome.is_imported:
                self.imported += 1
                if not outcome.dry_run:
                    self._latencies.append(outcome.latency)
            else:
                self.failed += 1

        if self._since_emit >= self.every_records or self.clock() - self._last_emit >= self.interval_seconds:
            return self.emit()
        return None

    def average_import_latency(self) -> float | None:
        if not self._latencies:
            return None
        return sum(self._latencies) / len(self._latencies)

    def remaining(self) -> int | None:
        if self.total is None:
            return None
        return max(self.total - self.processed, 0)

    def eta_seconds(self) -> float | None:
        remaining = self.remaining()
        average = self.average_import_latency()
        if remaining is None or average is None:
            return None
        return remaining * average

    def status_line(self) -> str:
        prefix = f"Progress [{self.label}]" if self.label else "Progress"
        if self.total:
            pct = self.processed / self.total * 100.0
            done = f"{format_number(self.processed)}/{format_number(self.total)} actions ({pct:.1f}%)"
        else:
            done = f"processed {format_number(self.processed)} actions"
        line = (
            f"{prefix}: {done}, {format_number(self.imported)} imported, "
            f"{format_number(self.skipped)} skipped, {format_number(self.failed)} failed"
        )
        average = self.average_import_latency()
        if average is not None:
            line += f" | avg {average:.2f}s/import"
        eta = self.eta_seconds()
        if eta is not None:
            line += f" | est. remaining: {eta:.1f}s"
        return line

    def emit(self) -> str:
        self.flush_skips()
        line = self.status_line()
        logger.info(line)
        self._since_emit = 0
        self._last_emit = self.clock()
        return line

    def flush_skips(self) -> str | None:
        count = sum(self._skip_run.values())
        if not count:
            return None
        reasons = ", ".join(
            f"{reason.value.replace('-', ' ')}: {format_number(n)}" for reason, n in sorted(self._skip_run.items())
        )
        span = self._skip_first if count == 1 else f"{self._skip_first}..{self._skip_last}"
        line = f"Skipped {format_number(count)} action(s) ({reasons}) [action IDs {span}]"
        logger.info(line)
        self._skip_run = {}
        self._skip_first = self._skip_last = ""
        return line

    def _extend_skip_run(self, action_id: str, outcome: Outcome) -> None:
        reason = outcome.skip_reason or SkipReason.already_exists
        logger.debug("Skipped: action ID %s - %s", action_id, reason.value)
        if not self._skip_run:
            self._skip_first = action_id
        self._skip_last = action_id
        self._skip_run[reason] = self._skip_run.get(reason, 0) + 1
