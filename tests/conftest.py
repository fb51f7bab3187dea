# Shared pytest fixtures
from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

TRIP_HEADER = [
    "Trip_ID", "Client_Name", "Travel_Agency", "Start_Date", "End_Date",
    "Destination_Country", "Destination_City", "Adults", "Children", "Total_Travelers",
    "Flight_Cost", "Hotel_Cost", "Ground_Transport", "Activities_Tours", "Meals_Cost",
    "Insurance_Cost", "Other_Costs", "Currency", "Commission_Rate", "Commission_Amount",
    "Client_ID", "Client_Type",
]


def trip_row(**overrides: Any) -> dict[str, Any]:
    """A valid row keyed by import header; override cells by column name."""
    row: dict[str, Any] = {
        "Trip_ID": "T001",
        "Client_Name": "Acme Corp",
        "Travel_Agency": "Blue Sky Travel",
        "Start_Date": "2025-03-01",
        "End_Date": "2025-03-10",
        "Destination_Country": "Japan",
        "Destination_City": "Tokyo",
        "Adults": "2",
        "Children": "1",
        "Total_Travelers": "3",
        "Flight_Cost": "1200.50",
        "Hotel_Cost": "800",
        "Ground_Transport": "",
        "Activities_Tours": "150",
        "Meals_Cost": "",
        "Insurance_Cost": "45.99",
        "Other_Costs": "",
        "Currency": "USD",
        "Commission_Rate": "10",
        "Commission_Amount": "",
        "Client_ID": "C-9",
        "Client_Type": "corporate",
    }
    row.update(overrides)
    return row


def _csv_cell(value: Any) -> str:
    text = "" if value is None else str(value)
    if any(ch in text for ch in ',"\n'):
        text = '"' + text.replace('"', '""') + '"'
    return text


def build_csv(rows: list[dict[str, Any]], header: list[str] | None = None) -> str:
    header = header or TRIP_HEADER
    lines = [",".join(header)]
    for row in rows:
        lines.append(",".join(_csv_cell(row.get(col)) for col in header))
    return "\n".join(lines) + "\n"


def build_xlsx(path: Path, rows: list[list[Any]], sheet_name: str = "Trips", extra_sheets: dict[str, list[list[Any]]] | None = None) -> Path:
    """Write rows (first row = header) to an .xlsx file via openpyxl."""
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
        for name, extra in (extra_sheets or {}).items():
            pd.DataFrame(extra).to_excel(writer, sheet_name=name, header=False, index=False)
    return path


def row_values(row: dict[str, Any], header: list[str] | None = None) -> list[Any]:
    header = header or TRIP_HEADER
    return [row.get(col) for col in header]


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """max_file_size_bytes: 1048576
max_rows_per_import: 50
insert_batch_size: 2
tiers:
  starter:
    name: Starter
    trip_limit: 5
  standard:
    name: Standard
    trip_limit: 100
rate_limits:
  bulk_per_user:
    limit: 3
    window_seconds: 60
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "voyagriq.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def valid_csv() -> str:
    return build_csv([
        trip_row(),
        trip_row(Trip_ID="T002", Client_Name="Jane Doe", Client_Type="individual",
                 Commission_Rate="", Commission_Amount="250"),
        trip_row(Trip_ID="T003", Start_Date="04/05/2025", End_Date="4/12/2025", Client_Type=""),
    ])


@pytest.fixture()
def xlsx_file(temp_workdir: Path) -> Path:
    rows = [
        TRIP_HEADER,
        row_values(trip_row()),
        row_values(trip_row(Trip_ID="T002", Client_Name="Jane Doe")),
    ]
    return build_xlsx(temp_workdir / "data" / "trips.xlsx", rows)


@pytest.fixture()
def trip_header() -> list[str]:
    return list(TRIP_HEADER)


@pytest.fixture()
def make_row():
    return trip_row


@pytest.fixture()
def make_csv():
    return build_csv


@pytest.fixture()
def make_xlsx():
    """Build an .xlsx from dict rows: make_xlsx(path, [row, ...], header=None)."""

    def _make(path: Path, rows: list[dict[str, Any]], header: list[str] | None = None, **kwargs: Any) -> Path:
        header = header or TRIP_HEADER
        return build_xlsx(path, [header] + [row_values(r, header) for r in rows], **kwargs)

    return _make
