from __future__ import annotations

import io
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook reader: turns an .xlsx/.xls container into positional rows.

The decoder only sees rows of cells (numbers, strings, None). Container parsing
is done here with pandas (openpyxl engine for .xlsx, xlrd for legacy .xls).
Only the first sheet is read, without a header row, since NSV workbooks carry
two or more header rows of varying shape.
"""

__all__ = [
    "TableReadError",
    "read_table",
    "read_first_sheet",
]

_ENGINES = {
    ".xlsx": "openpyxl",
    ".xls": "xlrd",
}


class TableReadError(Exception):
    """Raised when the input cannot be read as a table at all."""


def _engine_for(name: str | None) -> str | None:
    if not name:
        return None  # let pandas sniff the container
    return _ENGINES.get(Path(name).suffix.lower())


def read_first_sheet(
    source: Path | bytes, *, filename: str | None = None
) -> tuple[str, pd.DataFrame]:
    """Read the first worksheet as a raw DataFrame (no header inference).

    Parameters
    ----------
    source: workbook path, or its bytes (upload buffer)
    filename: original file name, used to choose the engine for bytes input

    Returns
    -------
    (sheet_name, DataFrame)
    """
    if isinstance(source, (bytes, bytearray)):
        handle: Any = io.BytesIO(source)
        engine = _engine_for(filename)
    else:
        handle = Path(source)
        engine = _engine_for(filename or handle.name)
    try:
        xls = pd.ExcelFile(handle, engine=engine)
        if not xls.sheet_names:
            raise TableReadError("workbook contains no sheets")
        sheet_name = str(xls.sheet_names[0])
        df = xls.parse(xls.sheet_names[0], header=None)
    except TableReadError:
        raise
    except Exception as e:
        raise TableReadError(f"cannot read workbook: {e}") from e
    return sheet_name, df


def _cell(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):  # pragma: no cover - array-like cell
        return value
    # numpy scalars -> python scalars
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        try:
            return value.item()
        except (AttributeError, ValueError):  # pragma: no cover
            return value
    return value


def frame_to_rows(df: pd.DataFrame) -> list[list[Any]]:
    """Convert a raw DataFrame into rows of python cells (NaN -> None).

    Trailing all-empty rows and trailing empty cells of each row are dropped, so
    row widths reflect the populated range like a spreadsheet export does.
    """
    rows: list[list[Any]] = []
    for raw in df.itertuples(index=False, name=None):
        cells = [_cell(v) for v in raw]
        while cells and (cells[-1] is None or (isinstance(cells[-1], str) and cells[-1] == "")):
            cells.pop()
        rows.append(cells)
    while rows and not rows[-1]:
        rows.pop()
    return rows


def read_table(source: Path | bytes, *, filename: str | None = None) -> list[list[Any]]:
    """Read the first sheet of a survey workbook as positional rows.

    Raises:
        TableReadError: if the container is corrupt or unsupported
    """
    _, df = read_first_sheet(source, filename=filename)
    return frame_to_rows(df)
