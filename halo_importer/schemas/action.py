"""Typed action records parsed from input rows."""

from __future__ import annotations

import datetime as dt
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from halo_importer.core.sanitize import clean_multiline, clean_single_line, is_blank, normalize_field_name

# Accepted header names per field, compared after normalize_field_name().
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "action_id": ("cfactionid", "cdactionid"),
    "ticket_id": ("requestid", "ticketid"),
    "who": ("actionwho", "who"),
    "note": ("note",),
    "action_date": ("actiondate", "datetime"),
    "outcome": ("outcome",),
}

SPREADSHEET_EPOCH = dt.datetime(1899, 12, 30)
DATETIME_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
)


def spreadsheet_serial_to_datetime(serial: float) -> dt.datetime:
    if not math.isfinite(serial) or serial < 0:
        raise ValueError(f"invalid spreadsheet date serial: {serial}")
    days = math.floor(serial)
    seconds = math.floor((serial - days) * 86400)
    try:
        return SPREADSHEET_EPOCH + dt.timedelta(days=days, seconds=seconds)
    except OverflowError as exc:
        # past datetime.max
        raise ValueError(f"invalid spreadsheet date serial: {serial}") from exc


def parse_action_date(value: Any) -> dt.datetime | None:
    if is_blank(value):
        return None
    if isinstance(value, dt.datetime):
        return value
    if isinstance(value, dt.date):
        return dt.datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        raise ValueError(f"invalid action date: {value!r}")
    if isinstance(value, (int, float)):
        return spreadsheet_serial_to_datetime(float(value))

    text = str(value).strip()
    try:
        serial = float(text)
    except ValueError:
        serial = None
    if serial is not None and math.isfinite(serial):
        return spreadsheet_serial_to_datetime(serial)
    if text[-1:] in {"Z", "z"}:
        text = text[:-1] + "+00:00"
    try:
        return dt.datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in DATETIME_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"failed to parse date {value!r}")


def _identifier_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return clean_single_line(value)


class ActionRecord(BaseModel):
    """One action row. `action_date` is naive local time at the source offset unless the input carried an offset."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    action_id: str
    ticket_id: int
    who: str
    note: str
    action_date: dt.datetime | None = None
    outcome: str | None = None

    @model_validator(mode="before")
    @classmethod
    def resolve_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        by_key: dict[str, Any] = {}
        for raw_key, value in data.items():
            key = normalize_field_name(raw_key)
            if key not in by_key or is_blank(by_key[key]):
                by_key[key] = value
        resolved: dict[str, Any] = {}
        for field_name, aliases in FIELD_ALIASES.items():
            if field_name in data:
                resolved[field_name] = data[field_name]
                continue
            present = [alias for alias in aliases if alias in by_key]
            if not present:
                continue
            filled = [alias for alias in present if not is_blank(by_key[alias])]
            resolved[field_name] = by_key[(filled or present)[0]]
        return resolved

    @field_validator("action_id", mode="before")
    @classmethod
    def normalize_action_id(cls, value: Any) -> str:
        cleaned = _identifier_text(value)
        if not cleaned:
            raise ValueError("action id must not be blank")
        return cleaned

    @field_validator("ticket_id", mode="before")
    @classmethod
    def normalize_ticket_id(cls, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"invalid ticket id: {value!r}")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError(f"invalid ticket id: {value!r}")
            value = int(value)
        if isinstance(value, str):
            text = value.strip()
            if text.endswith(".0"):
                text = text[:-2]
            if not text.isdigit():
                raise ValueError(f"invalid ticket id: {value!r}")
            value = int(text)
        return value

    @field_validator("ticket_id")
    @classmethod
    def validate_ticket_id(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("ticket id must be positive")
        return value

    @field_validator("who", mode="before")
    @classmethod
    def normalize_who(cls, value: Any) -> str:
        return clean_single_line(value)

    @field_validator("note", mode="before")
    @classmethod
    def normalize_note(cls, value: Any) -> str:
        return clean_multiline(value)

    @field_validator("action_date", mode="before")
    @classmethod
    def normalize_action_date(cls, value: Any) -> dt.datetime | None:
        return parse_action_date(value)

    @field_validator("outcome", mode="before")
    @classmethod
    def normalize_outcome(cls, value: Any) -> str | None:
        cleaned = clean_single_line(value)
        return cleaned or None
