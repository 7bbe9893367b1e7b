"""Excel input files read with openpyxl: first worksheet, header row, one action per row."""

from __future__ import annotations

import datetime as dt
import zipfile
from pathlib import Path
from typing import Any, Iterator

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from halo_importer.core.exceptions import FileReadError
from halo_importer.core.sanitize import clean_single_line, is_blank

RawRow = tuple[int, dict[str, Any]]


def _cell_value(value: Any) -> Any:
    if isinstance(value, str):
        return value
    if isinstance(value, (dt.datetime, dt.date, int, float)):
        return value
    if value is None:
        return None
    return str(value)


def iter_excel_rows(path: Path) -> Iterator[RawRow]:
    """Yield (row_number, values) for the first worksheet; row 1 is the header."""
    try:
        workbook = load_workbook(filename=str(path), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise FileReadError(f"failed to open excel file '{path.name}': {exc}", file_name=path.name) from exc

    try:
        if not workbook.worksheets:
            raise FileReadError(f"no worksheets found in excel file '{path.name}'", file_name=path.name)
        sheet = workbook.worksheets[0]
        rows = sheet.iter_rows(values_only=True)
        header_row = next(rows, None)
        if header_row is None:
            return
        headers = [clean_single_line(cell) for cell in header_row]
        if not any(headers):
            raise FileReadError(f"header row is empty in excel file '{path.name}'", file_name=path.name)

        for row_number, cells in enumerate(rows, start=2):
            values = {
                header: _cell_value(cell)
                for header, cell in zip(headers, cells)
                if header
            }
            if all(is_blank(value) for value in values.values()):
                continue
            yield row_number, values
    finally:
        workbook.close()


def read_excel_rows(path: Path) -> list[RawRow]:
    return list(iter_excel_rows(path))
