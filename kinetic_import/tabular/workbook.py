from __future__ import annotations

import io
from datetime import date, datetime, time
from typing import Any

import pandas as pd

from kinetic_import.models.raw_table import Cell, RawTable

from .cells import build_headers, coerce_cell, row_has_content
from .errors import EmptyWorkbookError, SheetHeaderError, WorkbookReadError

"""XLSX workbook parser (pandas + openpyxl).

Every sheet is read headerless; row 0 becomes the header row and the remaining
non-blank rows become data. Dates and booleans are turned into strings, numbers
pass through unchanged.
"""

__all__ = [
    "read_workbook",
    "normalize_sheet",
    "parse_xlsx_bytes",
]


def read_workbook(data: bytes) -> dict[str, pd.DataFrame]:
    """Read every sheet of an XLSX buffer into a raw DataFrame keyed by sheet name.

    pandas' default NA strings ("NA", "null", ...) are disabled so text cells are
    kept verbatim; only truly empty cells become NaN.
    """
    try:
        xls = pd.ExcelFile(io.BytesIO(data), engine="openpyxl")
    except Exception as e:
        raise WorkbookReadError(f"unable to read workbook: {e}") from e

    dfs: dict[str, pd.DataFrame] = {}
    for name in xls.sheet_names:
        df = xls.parse(name, header=None, keep_default_na=False, na_values=[""])
        dfs[str(name)] = df
    return dfs


def _normalize_value(value: Any) -> Cell:
    if value is None or value is pd.NaT:
        return None
    if pd.api.types.is_bool(value):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (pd.Timestamp, datetime, date, time)):
        return value.isoformat()
    if pd.api.types.is_number(value):
        if pd.isna(value):
            return None
        # numpy スカラー -> Python 数値
        return value.item() if hasattr(value, "item") else value
    if isinstance(value, str):
        return coerce_cell(value)
    return coerce_cell(str(value))


def normalize_sheet(df: pd.DataFrame, sheet_name: str) -> RawTable:
    """Turn a headerless sheet DataFrame into a RawTable.

    Raises:
        SheetHeaderError: the sheet has no non-blank row to use as header.
    """
    rows: list[list[Cell]] = []
    for raw in df.itertuples(index=False, name=None):
        row = [_normalize_value(v) for v in raw]
        if not row_has_content(row):
            continue
        rows.append(row)

    if not rows:
        raise SheetHeaderError(f"sheet '{sheet_name}' has no header row", sheet_name=sheet_name)

    headers = build_headers(rows[0])
    width = len(headers)
    data_rows = []
    for row in rows[1:]:
        fitted = row[:width]
        fitted.extend([None] * (width - len(fitted)))
        data_rows.append(fitted)
    return RawTable(headers=headers, rows=data_rows, sheet_name=sheet_name)


def parse_xlsx_bytes(data: bytes) -> list[RawTable]:
    """Parse all sheets of a workbook. The first table is the active one.

    Raises:
        WorkbookReadError: the bytes are not a readable workbook.
        EmptyWorkbookError: the workbook has no sheets.
        SheetHeaderError: a sheet has no header-producing row.
    """
    dfs = read_workbook(data)
    if not dfs:
        raise EmptyWorkbookError("No sheets detected in the XLSX file.")
    return [normalize_sheet(df, name) for name, df in dfs.items()]
