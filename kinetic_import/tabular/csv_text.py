from __future__ import annotations

import io

import pandas as pd

from kinetic_import.models.raw_table import Cell, RawTable

from .cells import build_headers, coerce_cell, row_has_content, synthesize_headers
from .errors import EmptyFileError, TableParseError

"""CSV text parser.

- Delimiter: ';' when the first non-blank line has more semicolons than commas,
  ',' otherwise (ties included).
- Field splitting is done by pandas: quoted fields may contain the delimiter or
  a line break, and '""' inside quotes is an escaped quote.
- Header row optional. Without it, headers are 'Column 1..N' (N = widest record)
  and the first line is data.
- Records without any non-blank cell are dropped.
"""

__all__ = [
    "detect_delimiter",
    "read_csv_records",
    "parse_csv_text",
]

_READ_OPTIONS = {
    "header": None,
    "dtype": object,
    "keep_default_na": False,
    "skip_blank_lines": True,
    "engine": "python",
}


def _sanitize_text(text: str) -> str:
    if text.startswith("\ufeff"):
        text = text[1:]
    return text.replace("\r\n", "\n").replace("\r", "\n")


def detect_delimiter(line: str) -> str:
    return ";" if line.count(";") > line.count(",") else ","


def read_csv_records(text: str, delimiter: str) -> tuple[list[list[Cell]], int]:
    """Split CSV text into coerced records.

    Returns the records padded to the widest one, plus the field count of the
    first record.

    Raises:
        TableParseError: pandas could not tokenize the text (e.g. unclosed quote).
    """
    over_wide: list[int] = []

    def _remember_width(bad_line: list[str]) -> None:
        # 先頭行より長い行は一旦捨て、幅だけ記録して読み直す
        over_wide.append(len(bad_line))
        return None

    try:
        frame = pd.read_csv(
            io.StringIO(text), sep=delimiter, on_bad_lines=_remember_width, **_READ_OPTIONS
        )
        first_width = frame.shape[1]
        if over_wide:
            width = max(first_width, *over_wide)
            frame = pd.read_csv(
                io.StringIO(text), sep=delimiter, names=list(range(width)), **_READ_OPTIONS
            )
    except pd.errors.EmptyDataError as e:
        raise EmptyFileError("CSV appears to be empty.") from e
    except pd.errors.ParserError as e:
        raise TableParseError(f"CSV could not be parsed: {e}") from e

    # 文字列以外 (短い行の埋め草 NaN/None) は空セル扱い
    records = [
        [coerce_cell(v) if isinstance(v, str) else None for v in row]
        for row in frame.to_numpy(dtype=object).tolist()
    ]
    return records, first_width


def _fit_row(values: list[Cell], width: int) -> list[Cell]:
    # 列数をヘッダ幅に揃える (不足は None 埋め / 超過は切り捨て)
    row = list(values[:width])
    row.extend([None] * (width - len(row)))
    return row


def parse_csv_text(text: str, has_header: bool = True) -> RawTable:
    """Parse decoded CSV text into a single RawTable.

    Raises:
        EmptyFileError: the text contains no non-blank line.
        TableParseError: the text could not be tokenized.
    """
    cleaned = _sanitize_text(text)
    lines = [line for line in cleaned.split("\n") if line.strip()]
    if not lines:
        raise EmptyFileError("CSV appears to be empty.")

    records, first_width = read_csv_records(cleaned, detect_delimiter(lines[0]))
    if has_header:
        headers = build_headers(records[0][:first_width])
        body = records[1:]
    else:
        headers = synthesize_headers(max(len(r) for r in records))
        body = records

    width = len(headers)
    return RawTable(
        headers=headers,
        rows=[_fit_row(r, width) for r in body if row_has_content(r)],
        header_from_file=has_header,
    )
