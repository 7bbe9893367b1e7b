"""Per-ticket availability state machine: unknown -> known -> missing (sticky)."""

from __future__ import annotations

import logging
from typing import Callable

from halo_importer.models.enums import TicketCheck, TicketStatus

logger = logging.getLogger(__name__)

TicketProbe = Callable[[int], bool]


class TicketAvailabilityTracker:
    def __init__(self, probe: TicketProbe | None = None) -> None:
        self._states: dict[int, TicketStatus] = {}
        self._probe = probe
        self.probes = 0

    def status(self, ticket_id: int) -> TicketStatus:
        return self._states.get(ticket_id, TicketStatus.unknown)

    def check(self, ticket_id: int) -> TicketCheck:
        state = self.status(ticket_id)
        if state == TicketStatus.missing:
            return TicketCheck.skip_missing
        if state == TicketStatus.unknown and self._probe is not None:
            self.probes += 1
            if self._probe(ticket_id):
                self.mark_known(ticket_id)
            else:
                self.mark_missing(ticket_id)
                return TicketCheck.skip_missing
        return TicketCheck.allow

    def mark_known(self, ticket_id: int) -> None:
        if self.status(ticket_id) == TicketStatus.missing:
            # missing is sticky for the run
            return
        self._states[ticket_id] = TicketStatus.known

    def mark_missing(self, ticket_id: int) -> None:
        if self.status(ticket_id) != TicketStatus.missing:
            logger.warning("Ticket %s does not exist; skipping its remaining actions", ticket_id)
        self._states[ticket_id] = TicketStatus.missing

    def missing_tickets(self) -> list[int]:
        return sorted(ticket for ticket, state in self._states.items() if state == TicketStatus.missing)
