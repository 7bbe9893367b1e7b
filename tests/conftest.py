from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from halo_importer.core.config import Settings, load_settings  # noqa: E402
from halo_importer.schemas.action import ActionRecord  # noqa: E402

BASE_URL = "https://halo.test"
REPORT_PATH = "api/ReportData/existing-actions"


class FakeClock:
    """Manually advanced clock usable as both `time.time` and `time.monotonic`."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def factory(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "BASE_RESOURCE_URL": BASE_URL,
            "CLIENT_ID": "client-id",
            "CLIENT_SECRET": "client-secret",
            "ACTION_IDS_RESOURCE_PATH": REPORT_PATH,
            "ACTION_ID_CUSTOM_FIELD_ID": 42,
            "REQUEST_DELAY_MS": 0,
        }
        values.update(overrides)
        return load_settings(_env_file=None, **values)

    return factory


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture
def make_record() -> Callable[..., ActionRecord]:
    def factory(action_id: str, ticket_id: int = 100, **fields: Any) -> ActionRecord:
        values: dict[str, Any] = {
            "action_id": action_id,
            "ticket_id": ticket_id,
            "who": "Import Bot",
            "note": f"note for {action_id}",
        }
        values.update(fields)
        return ActionRecord(**values)

    return factory
