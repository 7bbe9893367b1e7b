from __future__ import annotations

import httpx
import pytest

from halo_importer.core.exceptions import ConfigError, ReportError
from halo_importer.integrations.halo.client import HaloClient
from halo_importer.integrations.halo.mapper import ReportRow
from halo_importer.services.importer.existing_ids import ExistingIdIndex, ReportSource, report_sources


def _source(name: str, *rows: ReportRow) -> ReportSource:
    return ReportSource(name=name, fetch=lambda: list(rows))


def test_index_unions_every_row_of_every_source() -> None:
    index = ExistingIdIndex.build(
        [
            _source("a", ReportRow(frozenset({"1", "2"}), 1), ReportRow(frozenset({"3"}), 2)),
            _source("b", ReportRow(frozenset({"3", "4"}), 3)),
        ]
    )

    assert index.ids == frozenset({"1", "2", "3", "4"})
    assert len(index) == 4
    assert "4" in index
    assert index.contains("2")
    assert not index.contains("5")


def test_unpartitioned_single_row_is_accepted() -> None:
    index = ExistingIdIndex.build([_source("only", ReportRow(frozenset({"9"})))])

    assert index.ids == frozenset({"9"})


def test_no_sources_is_config_error() -> None:
    with pytest.raises(ConfigError):
        ExistingIdIndex.build([])


def test_partition_gap_is_config_error() -> None:
    with pytest.raises(ConfigError) as exc_info:
        ExistingIdIndex.build(
            [
                _source("first", ReportRow(frozenset({"1"}), 1)),
                _source("third", ReportRow(frozenset({"3"}), 3)),
            ]
        )

    assert "[2]" in exc_info.value.message


def test_mixing_partitioned_and_plain_rows_is_config_error() -> None:
    with pytest.raises(ConfigError):
        ExistingIdIndex.build(
            [
                _source("grouped", ReportRow(frozenset({"1"}), 1)),
                _source("plain", ReportRow(frozenset({"2"}))),
            ]
        )


def test_failing_source_aborts_the_build() -> None:
    def broken() -> list[ReportRow]:
        raise ReportError("Report request failed", resource="b")

    with pytest.raises(ReportError):
        ExistingIdIndex.build([_source("a", ReportRow(frozenset({"1"}))), ReportSource(name="b", fetch=broken)])


def test_report_sources_fetch_each_configured_path(make_settings) -> None:  # noqa: ANN001
    settings = make_settings(ACTION_IDS_RESOURCE_PATH="api/r/1,api/r/2")
    fetched: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        fetched.append(request.url.path)
        group = 1 if request.url.path.endswith("/1") else 2
        return httpx.Response(200, json=[{"existingActionIds": f"{group}0,{group}1", "group_num": group}])

    class FakeTokens:
        def ensure_valid(self) -> str:
            return "Bearer abc"

    client = HaloClient(settings, httpx.Client(transport=httpx.MockTransport(handler)))
    index = ExistingIdIndex.build(report_sources(client, FakeTokens()))

    assert fetched == ["/api/r/1", "/api/r/2"]
    assert index.ids == frozenset({"10", "11", "20", "21"})
