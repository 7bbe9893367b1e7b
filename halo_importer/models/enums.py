"""Shared enum values used by the importer components and schemas."""

from __future__ import annotations

import enum


class TicketStatus(str, enum.Enum):
    unknown = "unknown"
    known = "known"
    missing = "missing"


class TicketCheck(str, enum.Enum):
    allow = "allow"
    skip_missing = "skip-missing"


class OutcomeKind(str, enum.Enum):
    imported = "imported"
    skipped = "skipped"
    failed = "failed"


class SkipReason(str, enum.Enum):
    already_exists = "already-exists"
    ticket_missing = "ticket-missing"


class FailureCause(str, enum.Enum):
    auth_error = "auth-error"
    remote_error = "remote-error"
    transient_api_error = "transient-api-error"


class ResponseKind(str, enum.Enum):
    success = "success"
    unauthorized = "unauthorized"
    ticket_not_found = "ticket-not-found"
    failure = "failure"


class SubmissionState(str, enum.Enum):
    first_attempt = "first-attempt"
    refresh_and_retry = "refresh-and-retry"
    terminal = "terminal"


class StreamDirection(str, enum.Enum):
    forward = "forward"
    reverse = "reverse"


class HalfRange(str, enum.Enum):
    first = "first"
    second = "second"
