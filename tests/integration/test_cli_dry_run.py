from __future__ import annotations

import json
from pathlib import Path

import pytest

from voyagriq.cli import main as cli_main
from voyagriq.logging.init import reset_logging

"""End-to-end dry run over real CSV and XLSX files on disk.

Mixed batch: one clean CSV, one XLSX with row errors, one file that is not a
workbook at all. Checks console output, exit code and the JSON Lines error log.
"""


@pytest.fixture()
def mixed_files(temp_workdir: Path, valid_csv: str, make_row, make_xlsx) -> list[Path]:
    data = temp_workdir / "data"
    clean = data / "clean.csv"
    clean.write_text(valid_csv, encoding="utf-8")

    rows = [
        make_row(Trip_ID="X1"),
        make_row(Trip_ID="X2", Start_Date="2025-03-10", End_Date="2025-03-01"),
        make_row(Trip_ID="X1", Client_Name="Copy"),
        make_row(Trip_ID="X3", Client_Type="family", Hotel_Cost="-10"),
    ]
    partial = make_xlsx(data / "partial.xlsx", rows)

    broken = data / "broken.xlsx"
    broken.write_bytes(b"PK\x03\x04 truncated")
    return [clean, partial, broken]


def test_mixed_batch(temp_workdir: Path, mixed_files: list[Path], capsys):
    reset_logging()
    code = cli_main([str(p) for p in mixed_files])
    out = capsys.readouterr().out
    reset_logging()

    assert code == 2
    assert "INFO clean.csv: status=clean rows=3 valid=3 errors=0" in out
    assert "INFO partial.xlsx: status=rows_rejected rows=4 valid=1 errors=4" in out
    assert "INFO broken.xlsx: status=failed rows=0 valid=0 errors=1" in out
    assert "SUMMARY files=3 success=1 failed=2 rows=7 valid=4 errors=5 inserted=0" in out

    (log_path,) = (temp_workdir / "logs").glob("import-errors-*.log")
    records = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert [(r["file"], r["row"], r["field"]) for r in records] == [
        ("partial.xlsx", 3, "End_Date"),
        ("partial.xlsx", 4, "Trip_ID"),
        ("partial.xlsx", 5, "Client_Type"),
        ("partial.xlsx", 5, "Hotel_Cost"),
        ("broken.xlsx", 0, "file"),
    ]
    assert records[1]["message"] == 'Duplicate Trip_ID "X1" found in file'
    assert records[-1]["message"].startswith("Excel parsing error: ")


def test_rerun_is_deterministic(temp_workdir: Path, mixed_files: list[Path], capsys):
    outputs = []
    for _ in range(2):
        reset_logging()
        cli_main([str(p) for p in mixed_files])
        out = capsys.readouterr().out
        # elapsed time differs between runs
        outputs.append([
            line.split(" elapsed_sec=")[0] for line in out.splitlines() if "error log written to" not in line
        ])
    reset_logging()
    assert outputs[0] == outputs[1]
