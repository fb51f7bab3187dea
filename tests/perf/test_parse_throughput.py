from __future__ import annotations

import time
from pathlib import Path

from voyagriq.importer import parse_csv, parse_excel
from voyagriq.models.config_models import ImportSettings

"""Throughput smoke test at the per-import row cap.

Budget is generous so CI stays stable; it only catches pathological slowdowns
(e.g. quadratic duplicate tracking).
"""

MAX_ROWS = ImportSettings().max_rows_per_import
BUDGET_SEC = 5.0


def test_csv_at_row_cap(make_row, make_csv):
    text = make_csv([make_row(Trip_ID=f"T{i:05d}") for i in range(MAX_ROWS)])
    start = time.perf_counter()
    result = parse_csv(text)
    elapsed = time.perf_counter() - start
    assert result.valid_rows == MAX_ROWS
    assert elapsed < BUDGET_SEC, f"csv parse too slow: {elapsed:.3f}s"


def test_xlsx_at_row_cap(temp_workdir: Path, make_row, make_xlsx):
    path = make_xlsx(temp_workdir / "cap.xlsx", [make_row(Trip_ID=f"T{i:05d}") for i in range(MAX_ROWS)])
    content = path.read_bytes()
    start = time.perf_counter()
    result = parse_excel(content)
    elapsed = time.perf_counter() - start
    assert result.valid_rows == MAX_ROWS
    assert elapsed < BUDGET_SEC, f"xlsx parse too slow: {elapsed:.3f}s"


def test_large_file_duplicate_tracking_is_linear(make_row, make_csv):
    rows = [make_row(Trip_ID=f"T{i % 500:05d}") for i in range(5_000)]
    start = time.perf_counter()
    result = parse_csv(make_csv(rows))
    elapsed = time.perf_counter() - start
    assert result.valid_rows == 500
    assert len(result.errors) == 4_500
    assert elapsed < BUDGET_SEC * 2, f"duplicate tracking too slow: {elapsed:.3f}s"
