"""DTOs for Halo auth and submission responses."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, Field

from halo_importer.models.enums import ResponseKind


class TokenResponse(BaseModel):
    access_token: str = Field(min_length=1)
    token_type: str = "Bearer"
    expires_in: int = Field(ge=0)


class TokenErrorResponse(BaseModel):
    error: str
    error_description: str | None = None


@dataclass(frozen=True)
class SubmissionResponse:
    kind: ResponseKind
    status_code: int | None = None
    message: str = ""
    missing_ticket_ids: frozenset[int] = field(default_factory=frozenset)
    transport_error: bool = False

    @property
    def ok(self) -> bool:
        return self.kind == ResponseKind.success
