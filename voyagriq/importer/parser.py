from __future__ import annotations

import logging
from enum import Enum

from ..models.parse_result import ParseResult
from .tokenizers import (
    CsvFormatError,
    EmptyWorkbookError,
    WorkbookFormatError,
    read_csv_rows,
    read_first_sheet,
)
from .validator import validate_rows

"""Import entry points: uploaded file -> ParseResult.

parse_csv / parse_excel never raise for row problems. File-structure failures
(malformed CSV, unreadable or empty workbook, unsupported type) come back as a
ParseResult holding one row=0 / field="file" error.
"""

__all__ = [
    "CSV_MIME_TYPES",
    "EXCEL_MIME_TYPES",
    "ACCEPTED_MIME_TYPES",
    "ACCEPTED_EXTENSIONS",
    "ImportFormat",
    "detect_format",
    "parse_csv",
    "parse_excel",
    "parse_import_file",
]

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
XLS_MIME = "application/vnd.ms-excel"

CSV_MIME_TYPES = frozenset({"text/csv", "application/csv", "text/x-csv"})
EXCEL_MIME_TYPES = frozenset({XLSX_MIME, XLS_MIME})
ACCEPTED_MIME_TYPES = frozenset({"text/csv", XLS_MIME, XLSX_MIME})
ACCEPTED_EXTENSIONS = (".csv", ".xls", ".xlsx")

# Leading bytes of OLE2 (.xls) and ZIP (.xlsx) containers
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_ZIP_MAGIC = b"PK\x03\x04"


class ImportFormat(Enum):
    CSV = "csv"
    EXCEL = "excel"


def _extension_format(filename: str | None) -> ImportFormat | None:
    if not filename:
        return None
    lower = filename.lower()
    if lower.endswith(".csv"):
        return ImportFormat.CSV
    if lower.endswith((".xls", ".xlsx")):
        return ImportFormat.EXCEL
    return None


def _sniff(content: bytes | str) -> ImportFormat:
    if isinstance(content, bytes) and content.startswith((_OLE2_MAGIC, _ZIP_MAGIC)):
        return ImportFormat.EXCEL
    return ImportFormat.CSV


def detect_format(
    declared_type: str | None, filename: str | None = None, content: bytes | str | None = None
) -> ImportFormat | None:
    """Decide how to read an upload, None when the type is not supported.

    ``application/vnd.ms-excel`` is also what browsers send for .csv files on
    Windows, so it is settled by the extension or, failing that, the content.
    """
    mime = (declared_type or "").split(";", 1)[0].strip().lower()
    by_extension = _extension_format(filename)
    # a bare extension may be passed in place of the MIME type
    by_declared_extension = _extension_format(mime) if mime.startswith(".") or "/" not in mime else None

    if mime == XLS_MIME:
        if by_extension is not None:
            return by_extension
        return _sniff(content) if content is not None else ImportFormat.EXCEL
    if mime in CSV_MIME_TYPES:
        return ImportFormat.CSV
    if mime == XLSX_MIME:
        return ImportFormat.EXCEL
    if by_declared_extension is not None:
        return by_declared_extension
    return by_extension


def parse_csv(content: str) -> ParseResult:
    """Parse CSV text into a ParseResult."""
    try:
        sheet = read_csv_rows(content)
    except CsvFormatError as e:
        logger.warning(f"csv: malformed file: {e}")
        return ParseResult.file_error(f"CSV parsing error: {e}")
    result = validate_rows(sheet.rows)
    logger.debug(f"csv: rows={result.total_rows} valid={result.valid_rows} errors={len(result.errors)}")
    return result


def parse_excel(content: bytes) -> ParseResult:
    """Parse the first worksheet of an .xlsx/.xls workbook into a ParseResult."""
    try:
        sheet = read_first_sheet(content)
    except EmptyWorkbookError as e:
        logger.warning(f"excel: {e}")
        return ParseResult.file_error(str(e))
    except WorkbookFormatError as e:
        logger.warning(f"excel: unreadable workbook: {e}")
        return ParseResult.file_error(f"Excel parsing error: {e}")
    result = validate_rows(sheet.rows)
    logger.debug(
        f"excel: sheet={sheet.sheet_name} rows={result.total_rows} "
        f"valid={result.valid_rows} errors={len(result.errors)}"
    )
    return result


def parse_import_file(
    content: bytes | str, declared_type: str | None, filename: str | None = None
) -> ParseResult:
    """Dispatch an upload to the CSV or Excel parser.

    Parameters
    ----------
    content: raw upload bytes (text is accepted for CSV)
    declared_type: MIME type from the upload, or a file extension such as ".csv"
    filename: original file name, used when the MIME type is missing or ambiguous
    """
    fmt = detect_format(declared_type, filename, content)
    if fmt is None:
        label = declared_type or filename or "unknown"
        logger.warning(f"upload: unsupported file type: {label}")
        return ParseResult.file_error(f"Unsupported file type: {label}")

    if fmt is ImportFormat.CSV:
        if isinstance(content, bytes):
            try:
                text = content.decode("utf-8-sig")
            except UnicodeDecodeError as e:
                return ParseResult.file_error(f"File parsing error: file is not UTF-8 text ({e.reason})")
        else:
            text = content
        return parse_csv(text)

    if isinstance(content, str):
        return ParseResult.file_error("File parsing error: Excel content must be binary")
    return parse_excel(content)
