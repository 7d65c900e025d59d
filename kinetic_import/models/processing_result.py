from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .error_record import ErrorRecord
from .mapping import MappingResult
from .raw_table import ParsedFile, RawTable
from .validation import ValidationReport

"""Outcome models for the ingestion pipeline.

Each stage either produces its output or stops the pipeline with a list of
ErrorRecord entries; there is no partially committed state.
"""

__all__ = [
    "ImportStage",
    "ParseOutcome",
    "ImportOutcome",
]


class ImportStage(Enum):
    """Furthest stage an import reached.

    State transitions: parse -> mapping -> validated
    """
    PARSE = "parse"
    MAPPING = "mapping"
    VALIDATED = "validated"


@dataclass(frozen=True)
class ParseOutcome:
    file_name: str
    parsed: ParsedFile | None
    errors: list[ErrorRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.parsed is not None and not self.errors


@dataclass(frozen=True)
class ImportOutcome:
    """Everything one run_import call produced."""
    file_name: str
    stage: ImportStage
    parsed: ParsedFile | None = None
    table: RawTable | None = None  # マッピングに使ったテーブル (アクティブ or 指定シート)
    mapping: MappingResult | None = None
    report: ValidationReport | None = None
    errors: list[ErrorRecord] = field(default_factory=list)  # blocking errors only

    @property
    def ok(self) -> bool:
        return self.report is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "stage": self.stage.value,
            "sheetNames": list(self.parsed.sheet_names) if self.parsed is not None else [],
            "table": self.table.to_dict() if self.table is not None else None,
            "mapping": self.mapping.to_dict() if self.mapping is not None else None,
            "report": self.report.to_dict() if self.report is not None else None,
            "errors": [e.to_dict() for e in self.errors],
        }
