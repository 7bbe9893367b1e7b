"""Groups eligible records into bounded batches."""

from __future__ import annotations

from typing import Iterable, Iterator

from halo_importer.schemas.action import ActionRecord

Batch = tuple[ActionRecord, ...]


class BatchAssembler:
    def __init__(self, max_size: int = 1) -> None:
        if max_size < 1:
            raise ValueError("batch size must be >= 1")
        self.max_size = max_size
        self._pending: list[ActionRecord] = []

    @property
    def pending(self) -> Batch:
        return tuple(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def add(self, record: ActionRecord) -> Batch | None:
        """Queue a record; returns the batch when it just reached max size."""
        self._pending.append(record)
        if len(self._pending) >= self.max_size:
            return self._take()
        return None

    def flush(self) -> Batch | None:
        """Return the final partial batch, or None when nothing is pending."""
        if not self._pending:
            return None
        return self._take()

    def _take(self) -> Batch:
        batch = tuple(self._pending)
        self._pending = []
        return batch


def iter_batches(records: Iterable[ActionRecord], max_size: int = 1) -> Iterator[Batch]:
    assembler = BatchAssembler(max_size)
    for record in records:
        batch = assembler.add(record)
        if batch is not None:
            yield batch
    tail = assembler.flush()
    if tail is not None:
        yield tail
