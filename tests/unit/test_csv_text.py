from __future__ import annotations

import pytest

from kinetic_import.tabular.csv_text import detect_delimiter, parse_csv_text, read_csv_records
from kinetic_import.tabular.errors import EmptyFileError

"""Unit tests for the CSV text parser."""


def test_detect_delimiter_semicolon_majority():
    assert detect_delimiter("a;b,c;d") == ";"


def test_detect_delimiter_comma_default_and_tie():
    assert detect_delimiter("a,b,c") == ","
    assert detect_delimiter("a;b,c") == ","
    assert detect_delimiter("single") == ","


def test_quoted_fields_with_delimiter_and_escapes():
    table = parse_csv_text('id,text,quote\n1,"hello, world","say ""hi"""\n')
    assert table.rows == [[1, "hello, world", 'say "hi"']]


def test_quoted_field_may_span_lines():
    table = parse_csv_text('time,value,note\n0,1,"line one\nline two"\n1,2,ok\n')
    assert len(table.rows) == 2
    assert table.rows[0] == [0, 1, "line one\nline two"]
    assert table.rows[1] == [1, 2, "ok"]


def test_read_csv_records_reports_first_width():
    records, first_width = read_csv_records("a;b\n1;2;3\n", ";")
    assert first_width == 2
    assert records == [["a", "b", None], [1, 2, 3]]


def test_parse_csv_with_header():
    table = parse_csv_text("time,value\n0,1.5\n1,2\n")
    assert table.headers == ["time", "value"]
    assert table.rows == [[0, 1.5], [1, 2]]
    assert table.sheet_name is None


def test_parse_csv_semicolon_decimal_comma():
    table = parse_csv_text("time;value\n0;1,5\n10;2,25\n")
    assert table.headers == ["time", "value"]
    assert table.rows == [[0, 1.5], [10, 2.25]]


def test_parse_csv_strips_bom_and_normalizes_newlines():
    table = parse_csv_text("\ufefftime,value\r\n0,1\r1,2\r\n")
    assert table.headers == ["time", "value"]
    assert len(table.rows) == 2


def test_parse_csv_drops_blank_lines():
    table = parse_csv_text("time,value\n\n0,1\n   \n1,2\n")
    assert len(table.rows) == 2


def test_parse_csv_pads_and_truncates_rows():
    table = parse_csv_text("a,b,c\n1\n1,2,3,4\n")
    assert table.rows == [[1, None, None], [1, 2, 3]]
    assert all(len(r) == len(table.headers) for r in table.rows)


def test_parse_csv_blank_headers_named_by_position():
    table = parse_csv_text("time,,value\n0,x,1\n")
    assert table.headers == ["time", "Column 2", "value"]


def test_parse_csv_without_header_uses_widest_row():
    table = parse_csv_text("0,1\n1,2,3\n", has_header=False)
    assert table.headers == ["Column 1", "Column 2", "Column 3"]
    assert table.rows == [[0, 1, None], [1, 2, 3]]


@pytest.mark.parametrize("text", ["", "\n\n", "  \r\n  "])
def test_parse_csv_empty_raises(text):
    with pytest.raises(EmptyFileError):
        parse_csv_text(text)


def test_parse_csv_without_header_keeps_cells_beyond_first_line():
    table = parse_csv_text("0,1\n1,2,extra\n2,3\n", has_header=False)
    assert table.header_from_file is False
    assert table.column_count == 3
    assert table.rows[1] == [1, 2, "extra"]
