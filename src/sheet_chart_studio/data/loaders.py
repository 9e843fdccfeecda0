import io
from typing import Any, Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd

from sheet_chart_studio.core.errors import CodecError, EmptyWorkbook, NoDataRows, NoHeaders
from sheet_chart_studio.core.table import Cell, TabularDataStore
from sheet_chart_studio.utils.sortkeys import cell_text, is_empty_cell


def normalize_cell(value: Any) -> Cell:
    """Map a raw codec value onto the cell kinds the table holds (np types -> Python, NaN -> None)."""
    if isinstance(value, np.generic):
        value = value.item()
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not np.isfinite(value):
            return None
        return int(value) if value.is_integer() else value
    if isinstance(value, str):
        return value if value != "" else None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def read_first_sheet(content: bytes) -> Tuple[List[str], List[List[Any]]]:
    """
    Decode workbook bytes with pandas (openpyxl for .xlsx, xlrd for .xls).

    Returns: (sheet_names, raw row-major matrix of the first sheet)
    No header inference happens here: every row of the sheet is returned as-is.
    """
    try:
        with pd.ExcelFile(io.BytesIO(content)) as book:
            sheet_names = [str(name) for name in book.sheet_names]
            if not sheet_names:
                return [], []
            raw = book.parse(sheet_name=0, header=None, dtype=object, keep_default_na=False)
    except Exception as exc:
        raise CodecError() from exc
    return sheet_names, raw.to_numpy(dtype=object).tolist()


def _drop_blank_rows(matrix: Iterable[Sequence[Cell]]) -> List[List[Cell]]:
    return [list(row) for row in matrix if not all(is_empty_cell(c) for c in row)]


def _header_width(header_row: Sequence[Cell]) -> int:
    width = len(header_row)
    while width > 0 and is_empty_cell(header_row[width - 1]):
        width -= 1
    return width


def _fit_row(row: Sequence[Cell], width: int) -> Tuple[Cell, ...]:
    if len(row) >= width:
        return tuple(row[:width])
    return tuple(row) + (None,) * (width - len(row))


def build_table(matrix: Sequence[Sequence[Any]], sheet_names: Sequence[str] = ()) -> TabularDataStore:
    """Row 0 is the header row, every later non-blank row is data."""
    normalized = [[normalize_cell(v) for v in row] for row in matrix]
    if not _drop_blank_rows(normalized):
        raise EmptyWorkbook()

    header_row = normalized[0]
    width = _header_width(header_row)
    if width == 0:
        raise NoHeaders()

    headers = tuple(cell_text(c) for c in header_row[:width])
    # a row whose only values sit beyond the last header is blank once fitted
    rows = tuple(tuple(row) for row in _drop_blank_rows(_fit_row(row, width) for row in normalized[1:]))
    if not rows:
        raise NoDataRows()
    return TabularDataStore(headers=headers, rows=rows, sheet_names=tuple(sheet_names))


def decode_workbook(content: bytes) -> TabularDataStore:
    """Decode the first sheet of an .xlsx/.xls payload into a TabularDataStore.

    Raises EmptyWorkbook, NoHeaders, NoDataRows or CodecError.
    """
    sheet_names, matrix = read_first_sheet(content)
    if not sheet_names:
        raise EmptyWorkbook()
    return build_table(matrix, sheet_names)
