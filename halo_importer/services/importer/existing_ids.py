"""Existing-ID index: the union of every configured report source, built once per run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

from halo_importer.core.exceptions import ConfigError
from halo_importer.core.logging import format_number
from halo_importer.integrations.halo.auth import TokenManager
from halo_importer.integrations.halo.client import HaloClient
from halo_importer.integrations.halo.mapper import ReportRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportSource:
    name: str
    fetch: Callable[[], Sequence[ReportRow]]


def report_sources(client: HaloClient, tokens: TokenManager) -> list[ReportSource]:
    """One source per configured report URL; each fetch asks for a valid token first."""

    def _fetcher(url: str) -> Callable[[], Sequence[ReportRow]]:
        return lambda: client.fetch_report(url, tokens.ensure_valid())

    return [ReportSource(name=url, fetch=_fetcher(url)) for url in client.settings.report_urls]


def _check_partitions(rows: list[tuple[str, ReportRow]]) -> None:
    numbered = [(name, row.group_num) for name, row in rows if row.group_num is not None]
    if not numbered:
        return
    if len(numbered) != len(rows):
        unnumbered = sorted({name for name, row in rows if row.group_num is None})
        raise ConfigError(
            f"report rows mix partitioned and unpartitioned results (unpartitioned sources: {', '.join(unnumbered)})",
            setting="ACTION_IDS_RESOURCE_PATH",
        )
    seen = {group for _, group in numbered}
    expected = set(range(1, max(seen) + 1))
    missing = sorted(expected - seen)
    if missing:
        raise ConfigError(
            f"existing-ID report partitions missing: {missing}; configure every report path",
            setting="ACTION_IDS_RESOURCE_PATH",
        )


class ExistingIdIndex:
    """Read-only set of already imported action ids."""

    def __init__(self, ids: Iterable[str] = ()) -> None:
        self._ids: frozenset[str] = frozenset(ids)

    @classmethod
    def build(cls, sources: Sequence[ReportSource]) -> "ExistingIdIndex":
        """Fetch every source and union all rows. A failing source aborts the build."""
        if not sources:
            raise ConfigError("no existing-ID report sources configured", setting="ACTION_IDS_RESOURCE_PATH")

        collected: list[tuple[str, ReportRow]] = []
        for source in sources:
            rows = list(source.fetch())
            count = sum(len(row.ids) for row in rows)
            logger.info("Fetched %s existing action IDs in %s row(s) from %s", format_number(count), len(rows), source.name)
            collected.extend((source.name, row) for row in rows)

        _check_partitions(collected)

        ids: set[str] = set()
        for _, row in collected:
            ids.update(row.ids)
        index = cls(ids)
        logger.info("Found %s existing action IDs to skip", format_number(len(index)))
        return index

    @property
    def ids(self) -> frozenset[str]:
        return self._ids

    def contains(self, action_id: str) -> bool:
        return action_id in self._ids

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)
