"""Mapping utilities between action records, Halo payloads and report rows."""

from __future__ import annotations

import datetime as dt
import logging
import re
from dataclasses import dataclass
from typing import Any, Sequence

from halo_importer.schemas.action import ActionRecord

logger = logging.getLogger(__name__)

ACTION_ID_FIELD_NAME = "cfactionid"
REPORT_ID_KEYS = ("existingActionIds", "action_ids", "existing_action_ids")
REPORT_GROUP_KEYS = ("group_num", "groupNum")
HALO_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S.000Z"

_ID_SPLIT_RE = re.compile(r"[,;\s]+")


@dataclass(frozen=True)
class ReportRow:
    ids: frozenset[str]
    group_num: int | None = None


def to_utc(value: dt.datetime, *, source_offset_hours: int) -> dt.datetime:
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone(dt.timedelta(hours=source_offset_hours)))
    return value.astimezone(dt.timezone.utc)


def _custom_field_value(action_id: str) -> int | str:
    return int(action_id) if action_id.isdigit() else action_id


def action_payload(
    record: ActionRecord,
    *,
    custom_field_id: int,
    source_offset_hours: int,
    default_outcome: str,
) -> dict[str, Any]:
    value = _custom_field_value(record.action_id)
    payload: dict[str, Any] = {
        "_isimport": True,
        "actionwho": record.who,
        "cfactionid": value,
        "customfields": [{"id": custom_field_id, "name": ACTION_ID_FIELD_NAME, "value": value}],
        "note": record.note,
        "note_html": record.note,
        "outcome": record.outcome or default_outcome,
        "requestid": record.ticket_id,
        "ticket_id": record.ticket_id,
        "who": record.who,
    }
    if record.action_date is not None:
        utc_value = to_utc(record.action_date, source_offset_hours=source_offset_hours)
        payload["datetime"] = utc_value.strftime(HALO_DATETIME_FORMAT)
    return payload


def batch_payload(
    batch: Sequence[ActionRecord],
    *,
    custom_field_id: int,
    source_offset_hours: int,
    default_outcome: str,
) -> list[dict[str, Any]]:
    return [
        action_payload(
            record,
            custom_field_id=custom_field_id,
            source_offset_hours=source_offset_hours,
            default_outcome=default_outcome,
        )
        for record in batch
    ]


def split_ids(raw: Any) -> frozenset[str]:
    if raw is None:
        return frozenset()
    if isinstance(raw, (list, tuple, set, frozenset)):
        return frozenset(str(item).strip() for item in raw if str(item).strip())
    return frozenset(part for part in _ID_SPLIT_RE.split(str(raw)) if part)


def _group_num(row: dict[str, Any]) -> int | None:
    for key in REPORT_GROUP_KEYS:
        value = row.get(key)
        if value is None or str(value).strip() == "":
            continue
        try:
            return int(float(value))
        except (TypeError, ValueError):
            logger.warning("Ignoring non-numeric report group number: %r", value)
            return None
    return None


def map_report_rows(payload: Any) -> list[ReportRow]:
    """Turn a report response into rows; raises ValueError when no id column is present."""
    if isinstance(payload, dict):
        rows = payload.get("rows") if isinstance(payload.get("rows"), list) else [payload]
    elif isinstance(payload, list):
        rows = payload
    else:
        raise ValueError(f"unexpected report payload type: {type(payload).__name__}")

    mapped: list[ReportRow] = []
    for row in rows:
        if not isinstance(row, dict):
            raise ValueError(f"unexpected report row type: {type(row).__name__}")
        key = next((name for name in REPORT_ID_KEYS if name in row), None)
        if key is None:
            raise ValueError(f"report row has no id column; available columns: {sorted(row)}")
        mapped.append(ReportRow(ids=split_ids(row.get(key)), group_num=_group_num(row)))
    return mapped
