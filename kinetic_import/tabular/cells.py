from __future__ import annotations

import math
import re
from typing import Any

from kinetic_import.models.raw_table import Cell

"""Cell-level coercion shared by the CSV/XLSX parsers and the mapping engine.

Numbers may use either '.' or ',' as decimal separator (European exports).
"""

__all__ = [
    "NUMERIC_PATTERN",
    "coerce_cell",
    "parse_numeric_cell",
    "build_headers",
    "synthesize_headers",
    "cell_label",
    "is_blank",
    "row_has_content",
]

# optional sign, digits, optional '.' or ',' decimal part, optional exponent
NUMERIC_PATTERN = re.compile(r"^[+-]?\d+(?:[.,]\d+)?(?:[eE][+-]?\d+)?$")
_WHITESPACE = re.compile(r"\s+")


def _to_number(text: str) -> int | float:
    normalized = text.replace(",", ".")
    if "." not in normalized and "e" not in normalized.lower():
        return int(normalized)
    return float(normalized)


def coerce_cell(value: Any) -> Cell:
    """Coerce one raw cell to ``str | int | float | None``.

    Idempotent: an already numeric cell is returned unchanged (NaN -> None).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return value
    text = str(value).strip()
    if not text:
        return None
    if NUMERIC_PATTERN.match(text):
        return _to_number(text)
    return text


def parse_numeric_cell(value: Cell) -> float | None:
    """Strict numeric interpretation of a cell, or None when it is not a number.

    Strings are stripped of all internal whitespace first, so "1 000,5" -> 1000.5.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    cleaned = _WHITESPACE.sub("", str(value))
    if not cleaned or not NUMERIC_PATTERN.match(cleaned):
        return None
    number = float(cleaned.replace(",", "."))
    return number if math.isfinite(number) else None


def build_headers(raw_headers: list[Any]) -> list[str]:
    """Trimmed header labels; blanks become 'Column N' (1-based)."""
    headers: list[str] = []
    for index, raw in enumerate(raw_headers):
        label = coerce_cell(raw)
        text = cell_label(label)
        headers.append(text if text else f"Column {index + 1}")
    return headers


def synthesize_headers(count: int) -> list[str]:
    return [f"Column {i + 1}" for i in range(count)]


def cell_label(value: Cell) -> str:
    """Display label of a cell ("" for blanks). Integral floats drop the '.0'."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, int):
        return str(value)
    return str(value).strip()


def is_blank(value: Cell) -> bool:
    return cell_label(value) == ""


def row_has_content(row: list[Cell]) -> bool:
    return any(not is_blank(cell) for cell in row)
