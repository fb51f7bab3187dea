from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

"""Dollar <-> cent conversion for imported monetary cells.

Amounts are parsed as Decimal so that "1200.50" becomes exactly 120050 cents.
Rounding is half away from zero (ROUND_HALF_UP on Decimal).
"""

__all__ = [
    "MoneyFormatError",
    "parse_decimal",
    "dollars_to_cents",
    "cents_to_dollars",
]

# Currency symbols, thousands separators and stray whitespace
_STRIP_RE = re.compile(r"[$€£¥,\s]")
_CENT = Decimal("0.01")


class MoneyFormatError(ValueError):
    """Raised when a monetary cell cannot be read as a number."""


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def parse_decimal(value: Any) -> Decimal | None:
    """Parse a cell into a Decimal, None for blank cells.

    Accepts numbers and text such as ``"$1,200.50"``. Raises MoneyFormatError
    for anything else.
    """
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        raise MoneyFormatError(f"not a number: {value!r}")
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        if math.isinf(value):
            raise MoneyFormatError(f"not a finite number: {value!r}")
        # str() keeps the shortest repr, so 1200.5 -> Decimal("1200.5")
        return Decimal(str(value))
    text = _STRIP_RE.sub("", str(value))
    if not text:
        raise MoneyFormatError(f"not a number: {value!r}")
    try:
        number = Decimal(text)
    except InvalidOperation as e:
        raise MoneyFormatError(f"not a number: {value!r}") from e
    if not number.is_finite():
        raise MoneyFormatError(f"not a finite number: {value!r}")
    return number


def dollars_to_cents(value: Any) -> int:
    """Convert a dollar amount to integer cents; blank cells are 0."""
    amount = parse_decimal(value)
    if amount is None:
        return 0
    try:
        return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except InvalidOperation as e:
        # quantize fails once the cent value exceeds the context precision
        raise MoneyFormatError(f"amount out of range: {value!r}") from e


def cents_to_dollars(cents: int) -> Decimal:
    """Convert integer cents to a two-place Decimal dollar amount."""
    return (Decimal(cents) / 100).quantize(_CENT, rounding=ROUND_HALF_UP)
