from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

"""Run-level result models for the import CLI.

One FileStat per file handed to the CLI, aggregated into a RunResult that
feeds the SUMMARY line and the exit code.
"""


@dataclass(frozen=True)
class FileStat:
    """Per-file outcome."""
    file_name: str
    status: str  # clean / rows_rejected / failed
    total_rows: int
    valid_rows: int
    error_count: int
    elapsed_seconds: float
    inserted_rows: int = 0


@dataclass(frozen=True)
class RunResult:
    """Aggregated outcome of one CLI run."""
    success_files: int  # files with zero errors
    failed_files: int  # files with a file-level or row error
    total_rows: int
    valid_rows: int
    error_count: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    inserted_rows: int = 0
    file_stats: list[FileStat] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
