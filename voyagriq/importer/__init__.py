"""Bulk trip import pipeline: CSV / Excel upload -> validated trips + row errors."""

from .money import cents_to_dollars, dollars_to_cents
from .parser import ImportFormat, detect_format, parse_csv, parse_excel, parse_import_file
from .validator import validate_row, validate_rows

__all__ = [
    "ImportFormat",
    "cents_to_dollars",
    "detect_format",
    "dollars_to_cents",
    "parse_csv",
    "parse_excel",
    "parse_import_file",
    "validate_row",
    "validate_rows",
]
