from __future__ import annotations

import datetime as dt

import pytest
from pydantic import ValidationError

from halo_importer.schemas.action import ActionRecord, parse_action_date, spreadsheet_serial_to_datetime


def test_row_headers_are_matched_case_and_punctuation_insensitively() -> None:
    record = ActionRecord.model_validate(
        {
            "CF Action-ID": "A-1",
            "RequestID": "123",
            "ActionWho": "  Jane   Doe ",
            "Note": "line one\r\nline two",
            "ActionDate": "2024-01-02 03:04:05",
            "Unrelated Column": "ignored",
        }
    )

    assert record.action_id == "A-1"
    assert record.ticket_id == 123
    assert record.who == "Jane Doe"
    assert record.note == "line one\nline two"
    assert record.action_date == dt.datetime(2024, 1, 2, 3, 4, 5)
    assert record.outcome is None


def test_alternate_field_names_are_accepted() -> None:
    record = ActionRecord.model_validate(
        {"cdactionid": "B-7", "ticket_id": 9, "who": "Agent", "note": "n"}
    )

    assert record.action_id == "B-7"
    assert record.ticket_id == 9


def test_blank_primary_alias_falls_back_to_filled_one() -> None:
    record = ActionRecord.model_validate(
        {"cfactionid": "  ", "cdactionid": "C-3", "requestid": 5, "actionwho": "A", "note": "n"}
    )

    assert record.action_id == "C-3"


def test_spreadsheet_numbers_become_identifiers() -> None:
    record = ActionRecord.model_validate(
        {"cfactionid": 1234.0, "requestid": 55.0, "actionwho": "A", "note": "n", "actiondate": 45000.5}
    )

    assert record.action_id == "1234"
    assert record.ticket_id == 55
    assert record.action_date == dt.datetime(2023, 3, 15, 12, 0)


def test_serial_conversion_uses_1899_epoch() -> None:
    assert spreadsheet_serial_to_datetime(1.0) == dt.datetime(1899, 12, 31)
    assert spreadsheet_serial_to_datetime(45000.25) == dt.datetime(2023, 3, 15, 6, 0)


def test_parse_action_date_accepts_iso_and_numeric_text() -> None:
    assert parse_action_date("2024-01-02T03:04:05Z") == dt.datetime(2024, 1, 2, 3, 4, 5, tzinfo=dt.timezone.utc)
    assert parse_action_date("45000") == dt.datetime(2023, 3, 15)
    assert parse_action_date("") is None
    with pytest.raises(ValueError):
        parse_action_date("yesterday")


@pytest.mark.parametrize("value", [99999999, 99999999.5, "99999999", "1e300", float("inf"), "nan"])
def test_out_of_range_serial_dates_are_value_errors(value) -> None:  # noqa: ANN001
    with pytest.raises(ValueError):
        parse_action_date(value)


def test_out_of_range_serial_date_rejects_the_row() -> None:
    row = {"cfactionid": "1", "requestid": 1, "who": "A", "note": "n", "actiondate": "99999999"}

    with pytest.raises(ValidationError):
        ActionRecord.model_validate(row)


def test_outcome_is_optional_and_blank_means_default() -> None:
    blank = ActionRecord.model_validate({"cfactionid": "1", "requestid": 1, "who": "A", "note": "n", "outcome": " "})
    given = ActionRecord.model_validate({"cfactionid": "2", "requestid": 1, "who": "A", "note": "n", "outcome": "Phone"})

    assert blank.outcome is None
    assert given.outcome == "Phone"


@pytest.mark.parametrize(
    "row",
    [
        {"requestid": 1, "who": "A", "note": "n"},
        {"cfactionid": "   ", "requestid": 1, "who": "A", "note": "n"},
        {"cfactionid": "1", "requestid": "abc", "who": "A", "note": "n"},
        {"cfactionid": "1", "requestid": 0, "who": "A", "note": "n"},
        {"cfactionid": "1", "requestid": True, "who": "A", "note": "n"},
        {"cfactionid": "1", "requestid": 1, "who": "A"},
        {"cfactionid": "1", "requestid": 1, "who": "A", "note": "n", "actiondate": "not a date"},
    ],
)
def test_invalid_rows_are_rejected(row) -> None:  # noqa: ANN001
    with pytest.raises(ValidationError):
        ActionRecord.model_validate(row)


def test_records_are_immutable() -> None:
    record = ActionRecord.model_validate({"cfactionid": "1", "requestid": 1, "who": "A", "note": "n"})

    with pytest.raises(ValidationError):
        record.note = "changed"
