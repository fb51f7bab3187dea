from __future__ import annotations

from ..models.processing_result import RunResult

"""SUMMARY line rendering for the import CLI.

Format:
SUMMARY files={total} success={success} failed={failed} rows={rows}
valid={valid} errors={errors} inserted={inserted} elapsed_sec={elapsed}
(one line, single spaces).
"""


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # avoid scientific notation for tiny values
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: RunResult) -> str:
    """Render the SUMMARY line for a finished run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2025, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2025, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = RunResult(
        ...     success_files=1, failed_files=1, total_rows=10, valid_rows=8,
        ...     error_count=3, start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY files=2 success=1 failed=1 rows=10 valid=8 errors=3 inserted=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={result.total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"rows={result.total_rows} "
        f"valid={result.valid_rows} "
        f"errors={result.error_count} "
        f"inserted={result.inserted_rows} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
