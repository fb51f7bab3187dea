from __future__ import annotations

from pathlib import Path

import pytest

from voyagriq.importer.tokenizers import (
    CsvFormatError,
    WorkbookFormatError,
    normalize_header,
    read_csv_rows,
    read_first_sheet,
)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Trip_ID", "Trip_ID"),
        (" Client Name ", "Client_Name"),
        ("Start\tDate", "Start_Date"),
        ("Flight   Cost", "Flight_Cost"),
    ],
)
def test_normalize_header(raw, expected):
    assert normalize_header(raw) == expected


def test_csv_quoted_commas_newlines_and_doubled_quotes():
    text = 'Trip_ID,Client_Name,Destination_City\nT1,"Doe, Jane","New\nYork"\nT2,"Say ""hi""",Paris\n'
    sheet = read_csv_rows(text)
    assert sheet.columns == ["Trip_ID", "Client_Name", "Destination_City"]
    assert sheet.rows[0] == {"Trip_ID": "T1", "Client_Name": "Doe, Jane", "Destination_City": "New\nYork"}
    assert sheet.rows[1]["Client_Name"] == 'Say "hi"'


def test_csv_headers_are_normalized_and_bom_dropped():
    sheet = read_csv_rows("\ufeffTrip ID, Client Name\nT1,Acme\n")
    assert sheet.columns == ["Trip_ID", "Client_Name"]
    assert sheet.rows == [{"Trip_ID": "T1", "Client_Name": "Acme"}]


def test_csv_keeps_text_as_typed():
    # NA-like strings and leading zeros stay text
    sheet = read_csv_rows("Trip_ID,Client_ID,Destination_City\n007,NA,null\n")
    assert sheet.rows == [{"Trip_ID": "007", "Client_ID": "NA", "Destination_City": "null"}]


def test_csv_blank_lines_and_comma_only_rows_skipped():
    sheet = read_csv_rows("Trip_ID,Client_Name\nT1,Acme\n\n,\nT2,Beta\n")
    assert [r["Trip_ID"] for r in sheet.rows] == ["T1", "T2"]


@pytest.mark.parametrize("text", ["", "   \n", "\ufeff"])
def test_csv_empty_input(text):
    sheet = read_csv_rows(text)
    assert sheet.columns == []
    assert sheet.rows == []


def test_csv_header_only():
    sheet = read_csv_rows("Trip_ID,Client_Name\n")
    assert sheet.columns == ["Trip_ID", "Client_Name"]
    assert sheet.rows == []


def test_csv_trailing_delimiter_keeps_columns_aligned():
    # exporters often end every line with a comma
    sheet = read_csv_rows("Trip_ID,Client_Name,Destination_Country\nT1,Acme,France,\nT2,Beta,Spain,\n")
    assert sheet.columns == ["Trip_ID", "Client_Name", "Destination_Country"]
    assert sheet.rows == [
        {"Trip_ID": "T1", "Client_Name": "Acme", "Destination_Country": "France"},
        {"Trip_ID": "T2", "Client_Name": "Beta", "Destination_Country": "Spain"},
    ]


def test_csv_ragged_row_raises():
    with pytest.raises(CsvFormatError):
        read_csv_rows("a,b\n1,2\n1,2,3,4\n")


def test_first_sheet_only(temp_workdir: Path, make_xlsx):
    path = temp_workdir / "two.xlsx"
    make_xlsx(
        path,
        [{"Trip_ID": "T1", "Client Name": "Acme"}],
        header=["Trip_ID", "Client Name"],
        extra_sheets={"Other": [["Trip_ID"], ["IGNORED"]]},
    )
    sheet = read_first_sheet(path.read_bytes())
    assert sheet.sheet_name == "Trips"
    assert sheet.columns == ["Trip_ID", "Client_Name"]
    assert len(sheet.rows) == 1
    assert sheet.rows[0]["Trip_ID"] == "T1"


def test_workbook_blank_cells_become_none(temp_workdir: Path, make_xlsx):
    path = temp_workdir / "blank.xlsx"
    make_xlsx(path, [{"Trip_ID": "T1", "Client_Name": None}], header=["Trip_ID", "Client_Name"])
    sheet = read_first_sheet(path.read_bytes())
    assert sheet.rows == [{"Trip_ID": "T1", "Client_Name": None}]


def test_workbook_garbage_bytes_raise():
    with pytest.raises(WorkbookFormatError):
        read_first_sheet(b"this is not a workbook")
