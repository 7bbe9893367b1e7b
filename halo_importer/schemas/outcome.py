"""Per-record outcomes and the final run summary."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from halo_importer.models.enums import FailureCause, OutcomeKind, SkipReason


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    skip_reason: SkipReason | None = None
    cause: FailureCause | None = None
    message: str = ""
    latency: float = 0.0
    dry_run: bool = False

    @classmethod
    def imported(cls, *, latency: float = 0.0, dry_run: bool = False) -> "Outcome":
        return cls(OutcomeKind.imported, latency=latency, dry_run=dry_run)

    @classmethod
    def skipped(cls, reason: SkipReason, *, latency: float = 0.0) -> "Outcome":
        return cls(OutcomeKind.skipped, skip_reason=reason, latency=latency)

    @classmethod
    def failed(cls, cause: FailureCause, message: str, *, latency: float = 0.0) -> "Outcome":
        return cls(OutcomeKind.failed, cause=cause, message=message, latency=latency)

    @property
    def is_imported(self) -> bool:
        return self.kind == OutcomeKind.imported

    @property
    def is_skipped(self) -> bool:
        return self.kind == OutcomeKind.skipped

    @property
    def is_failed(self) -> bool:
        return self.kind == OutcomeKind.failed


class FailedAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    action_id: str
    cause: str
    message: str


class RunSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    processed: int = 0
    imported: int = 0
    skipped: int = 0
    skipped_existing: int = 0
    skipped_ticket_missing: int = 0
    failed: int = 0
    parse_errors: int = 0
    in_flight: int = 0
    files_processed: int = 0
    unreadable_files: list[str] = Field(default_factory=list)
    failures: list[FailedAction] = Field(default_factory=list)
    total_runtime_seconds: float = 0.0
    average_import_seconds: float = 0.0
    entries_per_minute: float = 0.0
    average_file_seconds: float = 0.0
    dry_run: bool = False
    interrupted: bool = False
