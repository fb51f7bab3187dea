from __future__ import annotations

import io
import re
from dataclasses import dataclass
from typing import Any

import pandas as pd

"""Tokenizers: raw upload content -> header-normalized row dicts.

Both formats go through pandas:
- CSV text via ``read_csv`` (C engine, Excel dialect: quoted delimiters,
  embedded newlines and doubled quotes are handled). Every cell is read as
  text so that validation sees exactly what the user typed.
- Workbooks via ``ExcelFile`` (openpyxl for .xlsx, xlrd for legacy .xls).
  Only the first worksheet is read; row 1 is the header.

Header normalization: strip, then collapse whitespace runs to "_"
("Client Name" -> "Client_Name"). Fully blank rows are skipped.
"""

__all__ = [
    "CsvFormatError",
    "EmptyWorkbookError",
    "WorkbookFormatError",
    "SheetData",
    "normalize_header",
    "read_csv_rows",
    "read_first_sheet",
]

_WS_RE = re.compile(r"\s+")
_BOM = "\ufeff"


class CsvFormatError(Exception):
    """Raised when CSV text is structurally malformed."""


class WorkbookFormatError(Exception):
    """Raised when bytes cannot be opened as a workbook."""


class EmptyWorkbookError(Exception):
    """Raised when a workbook has no worksheets."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # normalized header -> cell (None for empty)


def normalize_header(header: Any) -> str:
    return _WS_RE.sub("_", str(header).strip())


def _clean_cell(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        # array-like cells are not scalars; leave them as-is
        return value
    return value


def _frame_rows(columns: list[str | None], frame: pd.DataFrame) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for raw in frame.itertuples(index=False, name=None):
        cells = [_clean_cell(v) for v in raw]
        if all(c is None or (isinstance(c, str) and c.strip() == "") for c in cells):
            continue
        row: dict[str, Any] = {}
        for col, val in zip(columns, cells, strict=False):
            if col is None:
                continue
            # first occurrence wins for duplicated headers
            row.setdefault(col, val)
        rows.append(row)
    return rows


def read_csv_rows(content: str) -> SheetData:
    """Tokenize CSV text.

    Raises:
        CsvFormatError: unterminated quotes, ragged rows and other structural errors
    """
    if content.startswith(_BOM):
        content = content[len(_BOM):]
    if not content.strip():
        return SheetData(sheet_name="csv", columns=[], rows=[])
    try:
        frame = pd.read_csv(
            io.StringIO(content),
            dtype=str,
            # rows with one extra trailing field keep their columns aligned
            index_col=False,
            keep_default_na=False,
            na_filter=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError:
        return SheetData(sheet_name="csv", columns=[], rows=[])
    except (pd.errors.ParserError, UnicodeError) as e:
        raise CsvFormatError(str(e).strip()) from e

    columns = [normalize_header(c) for c in frame.columns]
    return SheetData(sheet_name="csv", columns=columns, rows=_frame_rows(list(columns), frame))


def read_first_sheet(content: bytes) -> SheetData:
    """Read the first worksheet of a workbook.

    Raises:
        WorkbookFormatError: content is not a readable .xlsx/.xls workbook
        EmptyWorkbookError: the workbook has no worksheets
    """
    try:
        xls = pd.ExcelFile(io.BytesIO(content))
    except Exception as e:  # zipfile / openpyxl / xlrd each raise their own types
        raise WorkbookFormatError(str(e) or type(e).__name__) from e

    with xls:
        if not xls.sheet_names:
            raise EmptyWorkbookError("No sheets found in Excel file")
        name = xls.sheet_names[0]
        try:
            # no header here; row 1 is applied below so blank header cells can be dropped
            frame = xls.parse(name, header=None, dtype=object, keep_default_na=False, na_values=[""])
        except Exception as e:
            raise WorkbookFormatError(str(e) or type(e).__name__) from e

    if frame.shape[0] == 0:
        return SheetData(sheet_name=str(name), columns=[], rows=[])

    header_cells = [_clean_cell(v) for v in frame.iloc[0].tolist()]
    columns: list[str | None] = [
        None if h is None or str(h).strip() == "" else normalize_header(h) for h in header_cells
    ]
    rows = _frame_rows(columns, frame.iloc[1:])
    return SheetData(
        sheet_name=str(name),
        columns=[c for c in columns if c is not None],
        rows=rows,
    )
