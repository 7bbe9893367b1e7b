"""Halo REST client: existing-ID reports, ticket lookups and action submission."""

from __future__ import annotations

import logging
import re
from typing import Any, Sequence

import httpx

from halo_importer.core.config import Settings
from halo_importer.core.exceptions import ReportError
from halo_importer.integrations.halo.mapper import ReportRow, batch_payload, map_report_rows
from halo_importer.integrations.halo.schemas import SubmissionResponse
from halo_importer.models.enums import ResponseKind
from halo_importer.schemas.action import ActionRecord

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
TICKET_NOT_FOUND_STATUSES = {400, 404, 422}
TICKET_NOT_FOUND_RE = re.compile(
    r"\b(?:ticket|request)s?\b[^.\n]{0,40}?\b(?:not\s+found|does\s+not\s+exist|doesn't\s+exist|no\s+longer\s+exists|unknown)\b",
    re.IGNORECASE,
)
TICKET_ID_RE = re.compile(r"\b(?:ticket|request)(?:[\s_]*id)?\s*[#:=]?\s*(\d+)", re.IGNORECASE)


def build_http_client(settings: Settings) -> httpx.Client:
    return httpx.Client(timeout=settings.REQUEST_TIMEOUT_SECONDS, headers={"Accept": "application/json"})


def _error_text(response: httpx.Response) -> str:
    return response.text.strip() or f"HTTP {response.status_code}"


def classify_submission_response(response: httpx.Response, batch_ticket_ids: set[int]) -> SubmissionResponse:
    """Map an action POST response to success / unauthorized / ticket-not-found / failure.

    Ticket-not-found is a 400/404/422 whose body says a ticket or request
    does not exist, or a 404 whose body names one of the batch's tickets.
    A bare 404 (wrong base URL or route) is a plain failure. Ticket ids named
    in the body (restricted to the batch's tickets) are reported; an empty
    set means the body named none.
    """
    status = response.status_code
    if response.is_success:
        return SubmissionResponse(ResponseKind.success, status_code=status)
    text = _error_text(response)
    if status == 401:
        return SubmissionResponse(ResponseKind.unauthorized, status_code=status, message=text)
    if status in TICKET_NOT_FOUND_STATUSES:
        named = {int(value) for value in TICKET_ID_RE.findall(text)} & batch_ticket_ids
        if TICKET_NOT_FOUND_RE.search(text) or (status == 404 and named):
            return SubmissionResponse(
                ResponseKind.ticket_not_found,
                status_code=status,
                message=text,
                missing_ticket_ids=frozenset(named),
            )
    return SubmissionResponse(
        ResponseKind.failure,
        status_code=status,
        message=f"status {status}, error: {text[:500]}",
    )


class HaloClient:
    def __init__(self, settings: Settings, http_client: httpx.Client) -> None:
        self.settings = settings
        self.http_client = http_client

    def _headers(self, token: str) -> dict[str, str]:
        return {"Authorization": token, "Content-Type": JSON_CONTENT_TYPE}

    def fetch_report(self, url: str, token: str) -> list[ReportRow]:
        try:
            response = self.http_client.get(url, headers=self._headers(token))
        except httpx.HTTPError as exc:
            raise ReportError(f"failed to send report request: {exc}", resource=url) from exc

        if not response.is_success:
            text = _error_text(response)
            logger.error("Report request failed: status %s, error: %s", response.status_code, text[:500])
            raise ReportError(
                f"Report request failed: status {response.status_code}, error: {text[:500]}",
                resource=url,
                status_code=response.status_code,
            )

        try:
            payload: Any = response.json()
            rows = map_report_rows(payload)
        except ValueError as exc:
            raise ReportError(f"failed to parse report response: {exc}", resource=url) from exc
        if not rows:
            raise ReportError("Report response is empty", resource=url)
        return rows

    def ticket_exists(self, ticket_id: int, token: str) -> bool:
        """Probe a ticket; only a 404 counts as missing, other errors raise."""
        url = self.settings.ticket_url(ticket_id)
        response = self.http_client.get(url, headers=self._headers(token))
        if response.status_code == 404:
            return False
        response.raise_for_status()
        return True

    def post_actions(self, batch: Sequence[ActionRecord], token: str) -> SubmissionResponse:
        payload = batch_payload(
            batch,
            custom_field_id=self.settings.ACTION_ID_CUSTOM_FIELD_ID,
            source_offset_hours=self.settings.SOURCE_UTC_OFFSET_HOURS,
            default_outcome=self.settings.DEFAULT_OUTCOME,
        )
        try:
            response = self.http_client.post(self.settings.actions_url, headers=self._headers(token), json=payload)
        except httpx.HTTPError as exc:
            ids = ", ".join(record.action_id for record in batch)
            logger.error("Failed to send POST request for action ID(s) %s: %s", ids, exc)
            return SubmissionResponse(
                ResponseKind.failure,
                message=f"failed to send POST request to {self.settings.actions_url}: {exc}",
                transport_error=True,
            )
        return classify_submission_response(response, {record.ticket_id for record in batch})
