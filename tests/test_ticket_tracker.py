from __future__ import annotations

from halo_importer.models.enums import TicketCheck, TicketStatus
from halo_importer.services.importer.tickets import TicketAvailabilityTracker


def test_unknown_ticket_is_allowed_without_lookup() -> None:
    tracker = TicketAvailabilityTracker()

    assert tracker.status(7) == TicketStatus.unknown
    assert tracker.check(7) == TicketCheck.allow


def test_missing_is_sticky() -> None:
    tracker = TicketAvailabilityTracker()
    tracker.mark_known(7)
    tracker.mark_missing(7)
    tracker.mark_known(7)

    assert tracker.status(7) == TicketStatus.missing
    assert tracker.check(7) == TicketCheck.skip_missing
    assert tracker.missing_tickets() == [7]


def test_later_records_for_missing_ticket_are_skipped_without_new_lookup() -> None:
    probed: list[int] = []

    def probe(ticket_id: int) -> bool:
        probed.append(ticket_id)
        return ticket_id != 7

    tracker = TicketAvailabilityTracker(probe)
    results = [tracker.check(ticket) for ticket in (7, 8, 7, 7, 8)]

    assert results == [
        TicketCheck.skip_missing,
        TicketCheck.allow,
        TicketCheck.skip_missing,
        TicketCheck.skip_missing,
        TicketCheck.allow,
    ]
    assert probed == [7, 8]
    assert tracker.probes == 2
    assert tracker.status(8) == TicketStatus.known


def test_known_ticket_is_never_looked_up() -> None:
    probed: list[int] = []
    tracker = TicketAvailabilityTracker(lambda ticket_id: probed.append(ticket_id) or True)
    tracker.mark_known(3)

    assert tracker.check(3) == TicketCheck.allow
    assert probed == []
