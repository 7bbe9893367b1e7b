from __future__ import annotations

import pytest

from halo_importer.core.config import load_settings
from halo_importer.core.exceptions import ConfigError


def _base(**overrides):  # noqa: ANN001, ANN202
    values = {
        "BASE_RESOURCE_URL": "https://halo.test/",
        "CLIENT_ID": "id",
        "CLIENT_SECRET": "secret",
        "ACTION_IDS_RESOURCE_PATH": "api/ReportData/one",
        "ACTION_ID_CUSTOM_FIELD_ID": 7,
    }
    values.update(overrides)
    return values


def test_derived_urls_strip_trailing_slashes() -> None:
    settings = load_settings(_env_file=None, **_base())

    assert settings.BASE_RESOURCE_URL == "https://halo.test"
    assert settings.token_url == "https://halo.test/auth/token"
    assert settings.actions_url == "https://halo.test/api/actions"
    assert settings.ticket_url(55) == "https://halo.test/api/tickets/55"
    assert settings.report_urls == ["https://halo.test/api/ReportData/one"]


def test_defaults_match_documented_values() -> None:
    settings = load_settings(_env_file=None, **_base())

    assert settings.BATCH_SIZE == 1
    assert settings.REQUEST_DELAY_MS == 500
    assert settings.request_delay_seconds == 0.5
    assert settings.TOKEN_REFRESH_BUFFER_SECONDS == 30
    assert settings.SOURCE_UTC_OFFSET_HOURS == -7
    assert settings.DEFAULT_OUTCOME == "Imported Note"
    assert settings.PROBE_TICKETS is False


def test_multiple_report_paths_are_normalized() -> None:
    settings = load_settings(_env_file=None, **_base(ACTION_IDS_RESOURCE_PATH=" /api/r/1 , api/r/2/ ,, "))

    assert settings.report_paths == ["api/r/1", "api/r/2"]
    assert settings.report_urls == ["https://halo.test/api/r/1", "https://halo.test/api/r/2"]


def test_repeated_report_path_is_config_error() -> None:
    with pytest.raises(ConfigError) as exc_info:
        load_settings(_env_file=None, **_base(ACTION_IDS_RESOURCE_PATH="api/r/1,api/r/1"))

    assert exc_info.value.details["setting"] == "ACTION_IDS_RESOURCE_PATH"
    assert exc_info.value.fatal is True


def test_empty_report_path_is_config_error() -> None:
    with pytest.raises(ConfigError):
        load_settings(_env_file=None, **_base(ACTION_IDS_RESOURCE_PATH=" , "))


def test_invalid_base_url_is_config_error() -> None:
    with pytest.raises(ConfigError) as exc_info:
        load_settings(_env_file=None, **_base(BASE_RESOURCE_URL="halo.test"))

    assert exc_info.value.details["setting"] == "BASE_RESOURCE_URL"
    assert exc_info.value.error_code == "INVALID_CONFIG"


def test_blank_secret_is_config_error() -> None:
    with pytest.raises(ConfigError) as exc_info:
        load_settings(_env_file=None, **_base(CLIENT_SECRET="   "))

    assert exc_info.value.details["setting"] == "CLIENT_SECRET"


def test_log_level_accepts_warn_alias() -> None:
    settings = load_settings(_env_file=None, **_base(LOG_LEVEL="warn"))

    assert settings.LOG_LEVEL == "WARNING"


def test_log_level_rejects_unknown_names() -> None:
    with pytest.raises(ConfigError):
        load_settings(_env_file=None, **_base(LOG_LEVEL="chatty"))


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ConfigError) as exc_info:
        load_settings(_env_file=None, **_base(BATCH_SIZE=0))

    assert exc_info.value.details["setting"] == "BATCH_SIZE"
