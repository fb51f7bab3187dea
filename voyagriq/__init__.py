"""VoyagrIQ bulk trip import.

Turns uploaded CSV / Excel files into validated trip records and per-row
errors, and runs the caller-side bulk import flow on top of that.
"""

from .importer import cents_to_dollars, dollars_to_cents, parse_csv, parse_excel, parse_import_file
from .models import ClientType, ParsedTrip, ParseError, ParseResult

__version__ = "0.1.0"

__all__ = [
    "ClientType",
    "ParseError",
    "ParseResult",
    "ParsedTrip",
    "cents_to_dollars",
    "dollars_to_cents",
    "parse_csv",
    "parse_excel",
    "parse_import_file",
]
