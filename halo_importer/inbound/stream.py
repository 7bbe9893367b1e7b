"""Record stream: input discovery, direction/half slicing and row parsing."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence, TypeVar

from pydantic import ValidationError

from halo_importer.core.exceptions import ConfigError, DeserializationError
from halo_importer.inbound.csv_reader import RawRow, read_csv_rows
from halo_importer.inbound.excel_reader import read_excel_rows
from halo_importer.models.enums import HalfRange, StreamDirection
from halo_importer.schemas.action import ActionRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

ROW_READERS: dict[str, tuple[str, Callable[[Path], list[RawRow]]]] = {
    ".csv": ("CSV", read_csv_rows),
    ".xlsx": ("Excel", read_excel_rows),
    ".xlsm": ("Excel", read_excel_rows),
}


def discover_files(input_dir: Path) -> list[Path]:
    """Supported input files in `input_dir`, sorted by name. Raises ConfigError before any remote work."""
    if not input_dir.is_dir():
        raise ConfigError(f"Input directory '{input_dir}' does not exist", setting="INPUT_DIR")
    files = sorted(
        (path for path in input_dir.iterdir() if path.is_file() and path.suffix.lower() in ROW_READERS),
        key=lambda path: path.name,
    )
    ignored = [path.name for path in input_dir.iterdir() if path.is_file() and path.suffix.lower() not in ROW_READERS]
    if ignored:
        logger.info("Ignoring %s unsupported file(s) in %s: %s", len(ignored), input_dir, ", ".join(sorted(ignored)))
    if not files:
        raise ConfigError(f"No .csv or .xlsx files found in '{input_dir}'", setting="INPUT_DIR")
    return files


def order_and_slice(
    items: Sequence[T],
    *,
    direction: StreamDirection = StreamDirection.forward,
    half: HalfRange | None = None,
) -> list[T]:
    """Restrict to a contiguous half (first half takes the odd item), then orient.

    The half is cut from the forward order, so `--half first --reverse` walks
    the same items as `--half first`, backwards.
    """
    selected = list(items)
    if half is not None:
        cut = math.ceil(len(selected) / 2)
        selected = selected[:cut] if half == HalfRange.first else selected[cut:]
    if direction == StreamDirection.reverse:
        selected.reverse()
    return selected


def parse_row(values: dict[str, Any], *, file_name: str, row_number: int) -> ActionRecord:
    try:
        return ActionRecord.model_validate(values)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err.get('loc', ())) or 'row'}: {err.get('msg')}" for err in exc.errors()
        )
        raise DeserializationError(
            f"failed to deserialize row {row_number} in file '{file_name}': {problems}",
            file_name=file_name,
            row_number=row_number,
            fields=sorted(str(key) for key in values),
        ) from exc


@dataclass(frozen=True)
class InputFile:
    path: Path

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def kind(self) -> str:
        return ROW_READERS[self.path.suffix.lower()][0]

    def load_rows(self, direction: StreamDirection = StreamDirection.forward) -> list[RawRow]:
        """Read every non-blank data row; raises FileReadError if the file cannot be read."""
        reader = ROW_READERS[self.path.suffix.lower()][1]
        return order_and_slice(reader(self.path), direction=direction)


class RecordStream:
    """Ordered input files for one run; direction applies to files and to rows within each file."""

    def __init__(
        self,
        paths: Sequence[Path],
        *,
        direction: StreamDirection = StreamDirection.forward,
        half: HalfRange | None = None,
    ) -> None:
        self.direction = direction
        self.half = half
        self.files = [InputFile(path) for path in order_and_slice(paths, direction=direction, half=half)]

    @classmethod
    def from_directory(
        cls,
        input_dir: Path,
        *,
        direction: StreamDirection = StreamDirection.forward,
        half: HalfRange | None = None,
    ) -> "RecordStream":
        stream = cls(discover_files(input_dir), direction=direction, half=half)
        if not stream.files:
            raise ConfigError(f"No input files left in '{input_dir}' after selecting the {half.value} half", setting="INPUT_DIR")
        return stream

    def __len__(self) -> int:
        return len(self.files)

    def __iter__(self) -> Iterator[InputFile]:
        return iter(self.files)
