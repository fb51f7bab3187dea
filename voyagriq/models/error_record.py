from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from .parse_result import ParseError

"""ErrorRecord model for the import error log.

Each record is one line of the JSON Lines error log written by
voyagriq.logging.error_log. The key set is fixed; row=0 marks a file-level
error where no data row applies.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Name of the imported file
        row: Row number (1-based, header-adjusted). 0 for file-level errors
        field: Offending column, or "file"
        message: Human-readable description
        value: Offending raw value rendered as text, or None
    """
    timestamp: str
    file: str
    row: int
    field: str
    message: str
    value: str | None

    @staticmethod
    def create(file: str, row: int, field: str, message: str, value: Any = None) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            row=row,
            field=field,
            message=message,
            value=None if value is None else str(value),
        )

    @staticmethod
    def from_parse_error(file: str, error: ParseError) -> ErrorRecord:
        return ErrorRecord.create(file, error.row, error.field, error.message, error.value)

    def to_json_line(self) -> str:
        # asdict keeps the key set fixed
        return json.dumps(asdict(self), ensure_ascii=False)
