from __future__ import annotations

import logging

import pytest

from halo_importer.models.enums import FailureCause, SkipReason
from halo_importer.schemas.outcome import Outcome
from halo_importer.services.importer.progress import ProgressTracker


def _tracker(clock, **kwargs) -> ProgressTracker:  # noqa: ANN001
    values = {"total": 10, "every_records": 1000, "interval_seconds": 60.0, "clock": clock}
    values.update(kwargs)
    return ProgressTracker(**values)


def test_eta_uses_remaining_records_and_import_latency(clock) -> None:  # noqa: ANN001
    tracker = _tracker(clock)
    tracker.observe("1", Outcome.imported(latency=1.0))
    tracker.observe("2", Outcome.imported(latency=3.0))

    assert tracker.remaining() == 8
    assert tracker.average_import_latency() == pytest.approx(2.0)
    assert tracker.eta_seconds() == pytest.approx(16.0)


def test_skip_and_dry_run_latency_never_enter_the_average(clock) -> None:  # noqa: ANN001
    tracker = _tracker(clock)
    tracker.observe("1", Outcome.imported(latency=2.0))
    tracker.observe("2", Outcome.skipped(SkipReason.already_exists, latency=50.0))
    tracker.observe("3", Outcome.imported(latency=90.0, dry_run=True))

    assert tracker.average_import_latency() == pytest.approx(2.0)
    assert tracker.eta_seconds() == pytest.approx(14.0)


def test_no_eta_before_first_import(clock) -> None:  # noqa: ANN001
    tracker = _tracker(clock)
    tracker.observe("1", Outcome.skipped(SkipReason.already_exists))

    assert tracker.eta_seconds() is None
    assert "est. remaining" not in tracker.status_line()


def test_emits_every_n_records(clock) -> None:  # noqa: ANN001
    tracker = _tracker(clock, every_records=3)

    lines = [tracker.observe(str(n), Outcome.imported(latency=1.0)) for n in range(1, 7)]

    assert [line is not None for line in lines] == [False, False, True, False, False, True]
    assert lines[2] == "Progress: 3/10 actions (30.0%), 3 imported, 0 skipped, 0 failed | avg 1.00s/import | est. remaining: 7.0s"


def test_emits_after_interval_and_resets_record_count(clock) -> None:  # noqa: ANN001
    tracker = _tracker(clock, every_records=3, interval_seconds=60.0)

    assert tracker.observe("1", Outcome.imported(latency=1.0)) is None
    clock.advance(60)
    assert tracker.observe("2", Outcome.imported(latency=1.0)) is not None
    # the time-based emission reset the record counter too
    assert tracker.observe("3", Outcome.imported(latency=1.0)) is None
    assert tracker.observe("4", Outcome.imported(latency=1.0)) is None
    assert tracker.observe("5", Outcome.imported(latency=1.0)) is not None


def test_status_line_without_total(clock) -> None:  # noqa: ANN001
    tracker = _tracker(clock, total=None)
    tracker.label = "sheet 1/2 'a.csv'"
    tracker.observe("1", Outcome.failed(FailureCause.remote_error, "boom"))

    assert tracker.status_line() == "Progress [sheet 1/2 'a.csv']: processed 1 actions, 0 imported, 0 skipped, 1 failed"


def test_consecutive_skips_are_coalesced(clock, caplog) -> None:  # noqa: ANN001
    caplog.set_level(logging.INFO, logger="halo_importer.services.importer.progress")
    tracker = _tracker(clock)

    tracker.observe("a", Outcome.skipped(SkipReason.already_exists))
    tracker.observe("b", Outcome.skipped(SkipReason.ticket_missing))
    tracker.observe("c", Outcome.skipped(SkipReason.already_exists))
    tracker.observe("d", Outcome.imported(latency=1.0))

    skip_lines = [record.getMessage() for record in caplog.records if record.getMessage().startswith("Skipped")]
    assert skip_lines == ["Skipped 3 action(s) (already exists: 2, ticket missing: 1) [action IDs a..c]"]


def test_flush_skips_single_and_empty(clock) -> None:  # noqa: ANN001
    tracker = _tracker(clock)

    assert tracker.flush_skips() is None
    tracker.observe("x", Outcome.skipped(SkipReason.already_exists))
    assert tracker.flush_skips() == "Skipped 1 action(s) (already exists: 1) [action IDs x]"
    assert tracker.flush_skips() is None
