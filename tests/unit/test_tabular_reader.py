from __future__ import annotations

from datetime import datetime

import pytest

from kinetic_import.models.raw_table import RawTable
from kinetic_import.tabular.errors import (
    EmptyFileError,
    SheetHeaderError,
    UnsupportedFileTypeError,
    WorkbookReadError,
)
from kinetic_import.tabular.reader import apply_header_choice, file_extension, parse_file

"""Unit tests for file-type dispatch and the XLSX sheet parser."""


def test_file_extension_case_insensitive():
    assert file_extension("Run.CSV") == "csv"
    assert file_extension("data.xlsx") == "xlsx"
    assert file_extension("noext") == ""


def test_parse_file_csv_text_and_bytes():
    from_text = parse_file("run.csv", "t,v\n0,1\n")
    from_bytes = parse_file("run.csv", "\ufefft,v\n0,1\n".encode("utf-8"))
    assert from_text.file_type == "csv"
    assert from_text.sheet_names == []
    assert from_text.active_table.headers == from_bytes.active_table.headers == ["t", "v"]
    assert from_bytes.active_table.rows == [[0, 1]]


def test_parse_file_unsupported_extension_checked_first():
    with pytest.raises(UnsupportedFileTypeError):
        parse_file("report.pdf", b"")
    with pytest.raises(UnsupportedFileTypeError):
        parse_file("notes.txt", "t,v\n0,1\n")


def test_parse_file_empty_content():
    with pytest.raises(EmptyFileError):
        parse_file("run.csv", "")
    with pytest.raises(EmptyFileError):
        parse_file("book.xlsx", b"")


def test_parse_file_garbage_workbook():
    with pytest.raises(WorkbookReadError):
        parse_file("book.xlsx", b"this is not a zip archive")


def test_parse_file_xlsx_all_sheets(xlsx_factory):
    data = xlsx_factory(
        {
            "Run A": [["time", "signal", "flag"], [0, 1.5, True], [1, 2.5, False]],
            "Run B": [["time", None], [0, 3]],
        }
    )
    parsed = parse_file("book.XLSX", data)
    assert parsed.file_type == "xlsx"
    assert parsed.sheet_names == ["Run A", "Run B"]
    assert parsed.active_table.sheet_name == "Run A"

    first = parsed.active_table
    assert first.headers == ["time", "signal", "flag"]
    assert first.rows[0][1] == 1.5
    assert first.rows[0][2] == "TRUE"
    assert first.rows[1][2] == "FALSE"
    assert isinstance(first.rows[0][0], int)

    second = parsed.table_for_sheet("Run B")
    assert second is not None
    assert second.headers == ["time", "Column 2"]
    assert parsed.table_for_sheet("missing") is None


def test_parse_file_xlsx_dates_become_iso_strings(xlsx_factory):
    data = xlsx_factory({"Sheet1": [["time", "v"], [datetime(2024, 3, 1, 12, 0, 0), 1]]})
    table = parse_file("book.xlsx", data).active_table
    assert table.rows[0][0] == "2024-03-01T12:00:00"


def test_parse_file_xlsx_skips_leading_blank_rows(xlsx_factory):
    data = xlsx_factory({"Sheet1": [[None, None], ["time", "v"], [0, 1], [None, None], [1, 2]]})
    table = parse_file("book.xlsx", data).active_table
    assert table.headers == ["time", "v"]
    assert table.rows == [[0, 1], [1, 2]]


def test_parse_file_xlsx_blank_sheet_has_no_header(xlsx_factory):
    data = xlsx_factory({"Empty": []})
    with pytest.raises(SheetHeaderError) as e:
        parse_file("book.xlsx", data)
    assert e.value.sheet_name == "Empty"


def test_apply_header_choice_demotes_header_row():
    table = RawTable(headers=["0", "Column 2", "1.5"], rows=[[1, "x", 2.5]], sheet_name="S")
    demoted = apply_header_choice(table, use_header_row=False)
    assert demoted.headers == ["Column 1", "Column 2", "Column 3"]
    assert demoted.rows == [[0, None, 1.5], [1, "x", 2.5]]
    assert demoted.sheet_name == "S"


def test_apply_header_choice_keeps_table_when_header_used():
    table = RawTable(headers=["time", "v"], rows=[[0, 1]])
    assert apply_header_choice(table, use_header_row=True) is table


def test_apply_header_choice_skips_headerless_tables():
    table = RawTable(headers=["Column 1", "Column 2"], rows=[[0, 1]], header_from_file=False)
    assert apply_header_choice(table, use_header_row=False) is table

    demoted = apply_header_choice(RawTable(headers=["t", "v"], rows=[]), use_header_row=False)
    assert demoted.header_from_file is False
    assert apply_header_choice(demoted, use_header_row=False) is demoted
