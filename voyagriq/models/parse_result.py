from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from .trip import ParsedTrip

"""Parse outcome models for the trip import pipeline.

- ParseError: one validation failure (row/field/message/value)
- RowAccepted / RowRejected: per-row tagged result produced by the validator
- ParseResult: batch outcome handed to callers

Row 0 with field ``"file"`` is the sentinel for file-level failures.
"""

__all__ = [
    "FILE_FIELD",
    "FILE_ROW",
    "ParseError",
    "RowAccepted",
    "RowRejected",
    "RowOutcome",
    "ParseResult",
]

FILE_ROW = 0
FILE_FIELD = "file"


@dataclass(frozen=True)
class ParseError:
    """A single row/column problem found during import.

    Attributes:
        row: 1-based row number adjusted for the header row (0 = whole file)
        field: Column name of the offending value, or "file"
        message: Human-readable description
        value: Offending raw value for diagnostics
    """
    row: int
    field: str
    message: str
    value: Any = None

    @property
    def is_file_level(self) -> bool:
        return self.row == FILE_ROW

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"row": self.row, "field": self.field, "message": self.message}
        if self.value is not None:
            data["value"] = _jsonable(self.value)
        return data


@dataclass(frozen=True)
class RowAccepted:
    row: int
    trip: ParsedTrip


@dataclass(frozen=True)
class RowRejected:
    row: int
    errors: tuple[ParseError, ...]


RowOutcome = Union[RowAccepted, RowRejected]


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one uploaded file.

    ``success`` is true only when no row produced an error. ``trips`` always
    holds every row that validated, so callers may commit a partial import.
    """
    success: bool
    trips: list[ParsedTrip] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)
    total_rows: int = 0
    valid_rows: int = 0

    @classmethod
    def from_rows(cls, trips: list[ParsedTrip], errors: list[ParseError], total_rows: int) -> ParseResult:
        return cls(
            success=not errors,
            trips=list(trips),
            errors=list(errors),
            total_rows=total_rows,
            valid_rows=len(trips),
        )

    @classmethod
    def file_error(cls, message: str) -> ParseResult:
        """Result for a file that could not be read at all."""
        return cls(
            success=False,
            trips=[],
            errors=[ParseError(row=FILE_ROW, field=FILE_FIELD, message=message)],
            total_rows=0,
            valid_rows=0,
        )

    @property
    def has_file_error(self) -> bool:
        return any(e.is_file_level for e in self.errors)

    def to_dict(self) -> dict[str, Any]:
        """Wire form used by upload endpoints (camelCase counters)."""
        return {
            "success": self.success,
            "trips": [t.to_dict() for t in self.trips],
            "errors": [e.to_dict() for e in self.errors],
            "totalRows": self.total_rows,
            "validRows": self.valid_rows,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)
