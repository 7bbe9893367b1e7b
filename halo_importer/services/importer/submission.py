"""Batch submission policy: token checks, single refresh-and-retry on 401, ticket-missing handling."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Callable, Sequence

from halo_importer.core.exceptions import AuthError
from halo_importer.core.rate_limit import RequestThrottle
from halo_importer.integrations.halo.auth import TokenManager
from halo_importer.integrations.halo.client import HaloClient
from halo_importer.integrations.halo.schemas import SubmissionResponse
from halo_importer.models.enums import FailureCause, ResponseKind, SkipReason, SubmissionState
from halo_importer.schemas.action import ActionRecord
from halo_importer.schemas.outcome import Outcome
from halo_importer.services.importer.tickets import TicketAvailabilityTracker

logger = logging.getLogger(__name__)

# The only two states that send a request; the loop over them is the retry bound.
ATTEMPT_STATES = (SubmissionState.first_attempt, SubmissionState.refresh_and_retry)


def _ids(records: Sequence[ActionRecord]) -> str:
    return ", ".join(record.action_id for record in records)


def _failure_cause(response: SubmissionResponse) -> FailureCause:
    if response.kind == ResponseKind.unauthorized:
        return FailureCause.auth_error
    if response.transport_error:
        return FailureCause.transient_api_error
    return FailureCause.remote_error


class Submitter:
    def __init__(
        self,
        client: HaloClient,
        tokens: TokenManager,
        tracker: TicketAvailabilityTracker,
        throttle: RequestThrottle,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.tokens = tokens
        self.tracker = tracker
        self.throttle = throttle
        self.clock = clock
        self.requests = 0

    def submit(self, batch: Sequence[ActionRecord]) -> list[tuple[ActionRecord, Outcome]]:
        """Submit one batch; returns exactly one outcome per record, in batch order."""
        started = self.clock()
        outcomes: dict[int, Outcome] = {}
        self._submit_indices(list(range(len(batch))), batch, outcomes)
        latency = (self.clock() - started) / max(len(batch), 1)
        return [(record, replace(outcomes[index], latency=latency)) for index, record in enumerate(batch)]

    def _submit_indices(
        self,
        indices: list[int],
        batch: Sequence[ActionRecord],
        outcomes: dict[int, Outcome],
    ) -> None:
        records = [batch[i] for i in indices]
        response = self._send(records)

        if response.ok:
            for i in indices:
                self.tracker.mark_known(batch[i].ticket_id)
                outcomes[i] = Outcome.imported()
                logger.debug("Success: imported action ID %s", batch[i].action_id)
            return

        if response.kind == ResponseKind.ticket_not_found:
            tickets = {batch[i].ticket_id for i in indices}
            missing = set(response.missing_ticket_ids) or (tickets if len(tickets) == 1 else set())
            for ticket in sorted(missing):
                self.tracker.mark_missing(ticket)
            for i in indices:
                if batch[i].ticket_id in missing:
                    outcomes[i] = Outcome.skipped(SkipReason.ticket_missing)
            remaining = sorted(tickets - missing)
            if remaining:
                # one resubmission per remaining ticket; a single-ticket send always resolves here
                logger.info(
                    "Ticket-not-found response for action ID(s) %s; resubmitting the rest one ticket at a time",
                    _ids(records),
                )
            for ticket in remaining:
                self._submit_indices([i for i in indices if batch[i].ticket_id == ticket], batch, outcomes)
            return

        cause = _failure_cause(response)
        logger.error("Action POST failed for action ID(s) %s: %s", _ids(records), response.message)
        for i in indices:
            outcomes[i] = Outcome.failed(cause, response.message)

    def _send(self, records: Sequence[ActionRecord]) -> SubmissionResponse:
        response = SubmissionResponse(ResponseKind.failure, message="no attempt made")
        for state in ATTEMPT_STATES:
            token = self.tokens.ensure_valid()
            self.throttle.wait()
            self.requests += 1
            response = self.client.post_actions(records, token)
            if response.kind != ResponseKind.unauthorized:
                return response
            if state == SubmissionState.refresh_and_retry:
                logger.error("Second 401 Unauthorized for action ID(s) %s; giving up on batch", _ids(records))
                return response

            logger.warning("Received 401 Unauthorized for action ID(s) %s, refreshing token and retrying", _ids(records))
            try:
                self.tokens.force_refresh()
            except AuthError as exc:
                if exc.fatal:
                    raise
                return SubmissionResponse(
                    ResponseKind.unauthorized,
                    status_code=401,
                    message=f"token refresh after 401 failed: {exc.message}",
                )
        return response
