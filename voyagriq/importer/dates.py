from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

"""Date cell parsing for trip imports.

Accepted inputs, tried in order:
1. ``YYYY-MM-DD`` text
2. ``M/D/YYYY`` text (US order)
3. date / datetime / pandas Timestamp cells from spreadsheets
4. Excel serial day numbers (1900 date system)
5. any other text pandas.to_datetime understands, if it carries a 4-digit year

All successful paths return an ISO ``YYYY-MM-DD`` string.
"""

__all__ = [
    "parse_date",
]

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_US_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
# The pandas fallback only sees text with an explicit year; "now", "today"
# and yearless text would otherwise depend on the current date
_YEAR_RE = re.compile(r"\d{4}")

# Excel's day 0; using 1899-12-30 absorbs the 1900 leap-year bug for serials > 60
_EXCEL_EPOCH = date(1899, 12, 30)
# Serial range covering 1900-01-01 .. 9999-12-31
_EXCEL_SERIAL_MAX = 2958465


def _from_parts(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _from_serial(serial: float) -> str | None:
    if math.isnan(serial) or serial < 1 or serial > _EXCEL_SERIAL_MAX:
        return None
    return (_EXCEL_EPOCH + timedelta(days=int(serial))).isoformat()


def parse_date(value: Any) -> str | None:
    """Return ``YYYY-MM-DD`` for a date-like cell, or None if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, numbers.Real):
        return _from_serial(float(value))

    text = str(value).strip()
    if not text:
        return None

    m = _ISO_RE.match(text)
    if m:
        return _from_parts(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _US_RE.match(text)
    if m:
        return _from_parts(int(m.group(3)), int(m.group(1)), int(m.group(2)))

    if not _YEAR_RE.search(text):
        return None

    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is pd.NaT:
        return None
    return parsed.date().isoformat()
