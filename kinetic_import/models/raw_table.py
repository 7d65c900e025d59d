from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

"""RawTable model: parsed tabular file content before any column mapping.

A RawTable is produced once by the tabular parsers and never mutated afterwards.
Rows always have exactly ``len(headers)`` cells (short rows are padded with None).
"""

__all__ = [
    "Cell",
    "RawTable",
    "ParsedFile",
]

Cell = Union[str, int, float, None]


@dataclass(frozen=True)
class RawTable:
    """Headers plus typed cells for a single CSV file or XLSX sheet."""
    headers: list[str]  # 空ヘッダは "Column N" に置換済
    rows: list[list[Cell]]
    sheet_name: str | None = None
    header_from_file: bool = True  # False: headers are synthesized "Column N"

    @property
    def column_count(self) -> int:
        return len(self.headers)

    def column(self, index: int) -> list[Cell]:
        """Return all cells of one column in row order."""
        return [row[index] for row in self.rows]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "headers": list(self.headers),
            "rows": [list(r) for r in self.rows],
        }
        if self.sheet_name is not None:
            data["sheetName"] = self.sheet_name
        return data


@dataclass(frozen=True)
class ParsedFile:
    """All tables read from one source file.

    For CSV there is exactly one table and ``sheet_names`` is empty.
    For XLSX every sheet becomes a table and the first one is active.
    """
    file_name: str
    file_type: str  # "csv" | "xlsx"
    tables: list[RawTable]
    sheet_names: list[str] = field(default_factory=list)

    @property
    def active_table(self) -> RawTable:
        return self.tables[0]

    def table_for_sheet(self, sheet_name: str) -> RawTable | None:
        for table in self.tables:
            if table.sheet_name == sheet_name:
                return table
        return None
