"""Importer configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from halo_importer.core.exceptions import ConfigError

BASE_DIR = Path(__file__).resolve().parents[2]

TOKEN_URL_PATH = "auth/token"
ACTIONS_URL_PATH = "api/actions"
TICKETS_URL_PATH = "api/tickets"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class Settings(BaseSettings):
    APP_NAME: str = "Halo action importer"

    BASE_RESOURCE_URL: str
    CLIENT_ID: str
    CLIENT_SECRET: str
    # Every report path that makes up the existing-ID index, comma separated.
    ACTION_IDS_RESOURCE_PATH: str
    ACTION_ID_CUSTOM_FIELD_ID: int

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "log"
    INPUT_DIR: str = "input"

    BATCH_SIZE: int = 1
    REQUEST_DELAY_MS: int = 500
    REQUEST_TIMEOUT_SECONDS: float = 30.0
    TOKEN_REFRESH_BUFFER_SECONDS: int = 30
    PROBE_TICKETS: bool = False

    PROGRESS_EVERY_RECORDS: int = 300
    PROGRESS_INTERVAL_SECONDS: int = 60

    SOURCE_UTC_OFFSET_HOURS: int = -7
    DEFAULT_OUTCOME: str = "Imported Note"

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8", extra="ignore")

    @field_validator("BASE_RESOURCE_URL")
    @classmethod
    def validate_base_url(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned.startswith(("http://", "https://")):
            raise ValueError(f"invalid URL format: {value!r}")
        return cleaned.rstrip("/")

    @field_validator("CLIENT_ID", "CLIENT_SECRET")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("must not be blank")
        return cleaned

    @field_validator("ACTION_IDS_RESOURCE_PATH")
    @classmethod
    def validate_report_paths(cls, value: str) -> str:
        paths = [path.strip().strip("/") for path in value.split(",") if path.strip().strip("/")]
        if not paths:
            raise ValueError("at least one report path is required")
        if len(set(paths)) != len(paths):
            raise ValueError("report paths must not repeat")
        return ",".join(paths)

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level == "WARN":
            level = "WARNING"
        if level not in LOG_LEVELS:
            raise ValueError(f"invalid log level {value!r}; must be one of: {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("BATCH_SIZE", "PROGRESS_EVERY_RECORDS", "PROGRESS_INTERVAL_SECONDS")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @field_validator("REQUEST_DELAY_MS", "TOKEN_REFRESH_BUFFER_SECONDS")
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @property
    def report_paths(self) -> list[str]:
        return self.ACTION_IDS_RESOURCE_PATH.split(",")

    @property
    def report_urls(self) -> list[str]:
        return [self._url(path) for path in self.report_paths]

    @property
    def token_url(self) -> str:
        return self._url(TOKEN_URL_PATH)

    @property
    def actions_url(self) -> str:
        return self._url(ACTIONS_URL_PATH)

    def ticket_url(self, ticket_id: int) -> str:
        return self._url(f"{TICKETS_URL_PATH}/{ticket_id}")

    @property
    def request_delay_seconds(self) -> float:
        return self.REQUEST_DELAY_MS / 1000.0

    def _url(self, path: str) -> str:
        return f"{self.BASE_RESOURCE_URL}/{path.lstrip('/')}"


def load_settings(**overrides: Any) -> Settings:
    """Build and validate settings once at startup; any problem is a ConfigError."""
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        first = exc.errors()[0]
        setting = ".".join(str(part) for part in first.get("loc", ())) or None
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
        )
        raise ConfigError(f"invalid configuration: {problems}", setting=setting) from exc
