"""Bearer token lifecycle for the Halo API (client-credential grant)."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

import httpx
from pydantic import ValidationError

from halo_importer.core.config import Settings
from halo_importer.core.exceptions import AuthEndpointUnreachable, AuthError
from halo_importer.integrations.halo.schemas import TokenErrorResponse, TokenResponse

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_BUFFER_SECONDS = 30
GRANT_TYPE = "client_credentials"
SCOPE = "all"


@dataclass(frozen=True)
class TokenState:
    value: str
    expires_at: float


class TokenManager:
    """Owns the current token; replaces it wholesale on every exchange."""

    def __init__(
        self,
        *,
        token_url: str,
        client_id: str,
        client_secret: str,
        http_client: httpx.Client,
        refresh_buffer: float = DEFAULT_REFRESH_BUFFER_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.http_client = http_client
        self.refresh_buffer = refresh_buffer
        self.clock = clock
        self.exchanges = 0
        self._state: TokenState | None = None

    @classmethod
    def from_settings(cls, settings: Settings, http_client: httpx.Client) -> "TokenManager":
        return cls(
            token_url=settings.token_url,
            client_id=settings.CLIENT_ID,
            client_secret=settings.CLIENT_SECRET,
            http_client=http_client,
            refresh_buffer=settings.TOKEN_REFRESH_BUFFER_SECONDS,
        )

    @property
    def state(self) -> TokenState | None:
        return self._state

    def needs_refresh(self) -> bool:
        if self._state is None:
            return True
        return self.clock() + self.refresh_buffer >= self._state.expires_at

    def ensure_valid(self) -> str:
        """Return a usable token, exchanging first when absent or inside the refresh buffer.

        Any exchange failure here is fatal for the run.
        """
        state = self._state
        if state is None or self.needs_refresh():
            logger.debug("Requesting %s Halo token", "initial" if state is None else "preemptive")
            try:
                state = self._exchange()
            except AuthError as exc:
                exc.fatal = True
                raise
            self._state = state
        return state.value

    def force_refresh(self) -> str:
        """Unconditionally exchange credentials, used after a 401.

        A rejected exchange only fails the in-flight batch; an unreachable
        endpoint raises AuthEndpointUnreachable, which is fatal.
        """
        logger.info("Forcing Halo token refresh")
        self._state = None
        self._state = self._exchange()
        return self._state.value

    def _exchange(self) -> TokenState:
        form = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": GRANT_TYPE,
            "scope": SCOPE,
        }
        self.exchanges += 1
        try:
            response = self.http_client.post(
                self.token_url,
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.TransportError as exc:
            logger.error("Failed to send authentication request to %s: %s", self.token_url, exc)
            raise AuthEndpointUnreachable(f"failed to reach auth endpoint {self.token_url}: {exc}") from exc

        status = response.status_code
        if status == 401:
            logger.error("Authentication failed: invalid credentials (status: %s)", status)
            raise AuthError("Authentication failed: invalid credentials", status_code=status)

        try:
            body = response.json()
        except ValueError as exc:
            raise AuthError(
                f"failed to parse token response (status: {status}): {response.text[:200]}",
                status_code=status,
            ) from exc

        if isinstance(body, dict) and "error" in body:
            try:
                err = TokenErrorResponse.model_validate(body)
            except ValidationError as exc:
                raise AuthError(
                    f"failed to parse token error response (status: {status}): {response.text[:200]}",
                    status_code=status,
                ) from exc
            description = err.error_description or "no description"
            logger.error("Authentication error: %s: %s", err.error, description)
            raise AuthError(f"Authentication error: {err.error}: {description}", status_code=status)

        if not response.is_success:
            raise AuthError(f"Authentication failed with status {status}", status_code=status)

        try:
            token = TokenResponse.model_validate(body)
        except ValidationError as exc:
            raise AuthError(f"invalid token response (status: {status}): {exc}", status_code=status) from exc

        token_type = (token.token_type or "Bearer").strip() or "Bearer"
        if token_type.lower() == "bearer":
            token_type = "Bearer"
        return TokenState(
            value=f"{token_type} {token.access_token}",
            expires_at=self.clock() + token.expires_in,
        )
