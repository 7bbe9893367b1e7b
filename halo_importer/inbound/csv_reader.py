"""CSV input files: header row plus one action per data row."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator

from halo_importer.core.exceptions import FileReadError
from halo_importer.core.sanitize import is_blank

CSV_ENCODING = "utf-8-sig"

RawRow = tuple[int, dict[str, Any]]


def _is_empty_row(values: dict[str, Any]) -> bool:
    return all(is_blank(value) for key, value in values.items() if key is not None)


def iter_csv_rows(path: Path) -> Iterator[RawRow]:
    """Yield (row_number, values) for every non-blank data row; row 1 is the header."""
    try:
        with path.open("r", encoding=CSV_ENCODING, newline="") as handle:
            reader = csv.DictReader(handle)
            if not reader.fieldnames:
                raise FileReadError(f"CSV header row is missing in '{path.name}'", file_name=path.name)
            for row_number, raw_row in enumerate(reader, start=2):
                # extra cells beyond the header land under the None key
                values = {key: value for key, value in raw_row.items() if key is not None}
                if _is_empty_row(values):
                    continue
                yield row_number, values
    except UnicodeDecodeError as exc:
        raise FileReadError(f"CSV file '{path.name}' must be UTF-8 encoded", file_name=path.name) from exc
    except csv.Error as exc:
        raise FileReadError(f"invalid CSV format in '{path.name}': {exc}", file_name=path.name) from exc
    except OSError as exc:
        raise FileReadError(f"failed to open csv file '{path.name}': {exc}", file_name=path.name) from exc


def read_csv_rows(path: Path) -> list[RawRow]:
    return list(iter_csv_rows(path))
