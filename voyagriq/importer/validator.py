from __future__ import annotations

import math
import numbers
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from functools import reduce
from typing import Any

from ..models.parse_result import ParseError, ParseResult, RowAccepted, RowOutcome, RowRejected
from ..models.trip import COST_FIELDS, DEFAULT_CURRENCY, ClientType, ParsedTrip
from .dates import parse_date
from .money import MoneyFormatError, dollars_to_cents, parse_decimal

"""Row validation and result aggregation for trip imports.

validate_row() turns one RawRow into a RowOutcome: every problem in the row is
collected (no fail-fast) and a row with any problem yields no trip.

fold_outcomes() partitions outcomes into trips and errors while an explicit
ImportAccumulator carries the trip_ids seen so far; the first occurrence of a
trip_id wins and later ones become errors.
"""

__all__ = [
    "DATA_ROW_OFFSET",
    "EXPECTED_COLUMNS",
    "REQUIRED_TEXT_FIELDS",
    "ImportAccumulator",
    "validate_row",
    "accumulate",
    "fold_outcomes",
    "validate_rows",
]

# index 0 -> row 2: one for 1-based numbering, one for the header row
DATA_ROW_OFFSET = 2

REQUIRED_TEXT_FIELDS = ("Trip_ID", "Client_Name", "Destination_Country")

EXPECTED_COLUMNS = (
    "Trip_ID", "Client_Name", "Travel_Agency", "Start_Date", "End_Date",
    "Destination_Country", "Destination_City", "Adults", "Children", "Total_Travelers",
    "Flight_Cost", "Hotel_Cost", "Ground_Transport", "Activities_Tours", "Meals_Cost",
    "Insurance_Cost", "Other_Costs", "Currency", "Commission_Rate", "Commission_Amount",
    "Client_ID", "Client_Type",
)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def _text(value: Any) -> str | None:
    """Trimmed text for a cell; integral floats lose their ".0" (Excel ids)."""
    if _is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _parse_count(value: Any) -> int | None:
    """Whole number from a cell; blank counts as 0, anything else non-integral is None."""
    if _is_blank(value):
        return 0
    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return int(number) if number.is_integer() else None


class _RowChecker:
    """Collects ParseErrors for one row while reading its cells."""

    def __init__(self, row: Mapping[str, Any], row_number: int) -> None:
        self.row = row
        self.row_number = row_number
        self.errors: list[ParseError] = []

    def fail(self, field_name: str, message: str, value: Any = None) -> None:
        self.errors.append(ParseError(self.row_number, field_name, message, value))

    def required_text(self, field_name: str) -> str | None:
        raw = self.row.get(field_name)
        text = _text(raw)
        if text is None:
            self.fail(field_name, f"{field_name} is required", raw)
        return text

    def date(self, field_name: str) -> str | None:
        raw = self.row.get(field_name)
        parsed = parse_date(raw)
        if parsed is None:
            self.fail(field_name, f"Invalid or missing {field_name} (use YYYY-MM-DD or MM/DD/YYYY)", raw)
        return parsed

    def count(self, field_name: str, minimum: int, message: str) -> int:
        raw = self.row.get(field_name)
        number = _parse_count(raw)
        if number is None or number < minimum:
            self.fail(field_name, message, raw)
            return 0
        return number

    def cents(self, field_name: str) -> int | None:
        """Non-negative cents, None when blank or invalid."""
        raw = self.row.get(field_name)
        if _is_blank(raw):
            return None
        try:
            cents = dollars_to_cents(raw)
        except MoneyFormatError:
            self.fail(field_name, f"{field_name} must be a valid amount", raw)
            return None
        if cents < 0:
            self.fail(field_name, f"{field_name} must not be negative", raw)
            return None
        return cents

    def percentage(self, field_name: str) -> Decimal | None:
        raw = self.row.get(field_name)
        try:
            rate = parse_decimal(raw.rstrip("%") if isinstance(raw, str) else raw)
        except MoneyFormatError:
            self.fail(field_name, f"{field_name} must be a valid percentage", raw)
            return None
        if rate is not None and rate < 0:
            self.fail(field_name, f"{field_name} must not be negative", raw)
            return None
        return rate


def validate_row(row: Mapping[str, Any], row_number: int) -> RowOutcome:
    """Validate and normalize one header-normalized row."""
    check = _RowChecker(row, row_number)

    trip_id = check.required_text("Trip_ID")
    client_name = check.required_text("Client_Name")
    destination_country = check.required_text("Destination_Country")

    start_date = check.date("Start_Date")
    end_date = check.date("End_Date")
    # ISO strings compare in calendar order
    if start_date and end_date and end_date < start_date:
        check.fail("End_Date", "End_Date must not be before Start_Date", f"{start_date} -> {end_date}")

    adults = check.count("Adults", 0, "Adults must be a valid non-negative number")
    children = check.count("Children", 0, "Children must be a valid non-negative number")
    total_travelers = check.count("Total_Travelers", 1, "Total_Travelers must be at least 1")

    client_type: ClientType | None = None
    raw_type = row.get("Client_Type")
    if not _is_blank(raw_type):
        client_type = ClientType.parse(str(raw_type))
        if client_type is None:
            check.fail("Client_Type", "Client_Type must be one of: individual, corporate, group", raw_type)

    costs = {attr: check.cents(column) or 0 for attr, column in COST_FIELDS.items()}

    commission_rate = check.percentage("Commission_Rate")
    commission_amount = check.cents("Commission_Amount")
    if commission_rate is not None and commission_amount is not None:
        check.fail(
            "Commission_Amount",
            "Provide either Commission_Rate or Commission_Amount, not both",
            row.get("Commission_Amount"),
        )

    if check.errors:
        return RowRejected(row=row_number, errors=tuple(check.errors))

    currency = _text(row.get("Currency"))
    trip = ParsedTrip(
        trip_id=trip_id,  # type: ignore[arg-type]
        client_name=client_name,  # type: ignore[arg-type]
        travel_agency=_text(row.get("Travel_Agency")),
        start_date=start_date,  # type: ignore[arg-type]
        end_date=end_date,  # type: ignore[arg-type]
        destination_country=destination_country,  # type: ignore[arg-type]
        destination_city=_text(row.get("Destination_City")),
        adults=adults,
        children=children,
        total_travelers=total_travelers,
        currency=currency.upper() if currency else DEFAULT_CURRENCY,
        commission_rate=commission_rate,
        commission_amount=commission_amount,
        client_id=_text(row.get("Client_ID")),
        client_type=client_type,
        source_row=row_number,
        **costs,
    )
    return RowAccepted(row=row_number, trip=trip)


@dataclass
class ImportAccumulator:
    """State threaded through the validation fold.

    Each fold owns its accumulator; nothing outlives a single parse call.
    """
    seen_trip_ids: set[str] = field(default_factory=set)
    trips: list[ParsedTrip] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)
    total_rows: int = 0

    def to_result(self) -> ParseResult:
        return ParseResult.from_rows(self.trips, self.errors, self.total_rows)


def accumulate(acc: ImportAccumulator, outcome: RowOutcome) -> ImportAccumulator:
    """Fold one row outcome into the accumulator, rejecting repeated trip_ids."""
    acc.total_rows += 1
    if isinstance(outcome, RowRejected):
        acc.errors.extend(outcome.errors)
        return acc

    trip = outcome.trip
    if trip.trip_id in acc.seen_trip_ids:
        acc.errors.append(
            ParseError(
                row=outcome.row,
                field="Trip_ID",
                message=f'Duplicate Trip_ID "{trip.trip_id}" found in file',
                value=trip.trip_id,
            )
        )
        return acc
    acc.seen_trip_ids.add(trip.trip_id)
    acc.trips.append(trip)
    return acc


def fold_outcomes(outcomes: Iterable[RowOutcome]) -> ImportAccumulator:
    return reduce(accumulate, outcomes, ImportAccumulator())


def validate_rows(rows: Iterable[Mapping[str, Any]]) -> ParseResult:
    """Validate data rows in file order and assemble the ParseResult."""
    outcomes = (validate_row(row, index + DATA_ROW_OFFSET) for index, row in enumerate(rows))
    return fold_outcomes(outcomes).to_result()
