from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any

from .dataset import Dataset
from .time_axis import TimeMetrics, TimeNormalization, TimeUnit

"""Mapping models: the user's column selection and the mapping outcome.

MappingSelection is edited interactively by the caller. The mapping engine only
reads it; re-applying the same (RawTable, MappingSelection) pair yields the same
Dataset up to generated IDs.
"""

__all__ = [
    "MappingSelection",
    "MappingError",
    "MappingStats",
    "ResolvedColumns",
    "MappingResult",
]


@dataclass(frozen=True)
class MappingSelection:
    """Which column means what. Column references are 0-based indices."""
    use_header_row: bool = True
    time_column: int | None = None
    value_columns: list[int] = field(default_factory=list)
    experiment_column: int | None = None
    replicate_column: int | None = None
    # 列ヘッダに単位が無い場合に使う単位 (None なら設定の default_time_unit)
    time_unit: TimeUnit | None = None

    @property
    def is_complete(self) -> bool:
        """A time column and at least one value column are chosen."""
        return self.time_column is not None and len(self.value_columns) > 0

    @property
    def structural_columns(self) -> set[int]:
        cols = set(self.value_columns)
        for idx in (self.time_column, self.experiment_column, self.replicate_column):
            if idx is not None:
                cols.add(idx)
        return cols


@dataclass(frozen=True)
class MappingError:
    """A blocking selection error or a soft per-row error.

    row is the 1-based data row index; -1 marks selection errors and the
    roll-up entry that counts rows beyond the verbatim cap.
    """
    row: int
    column: str
    error_type: str  # UPPER_SNAKE
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)


@dataclass(frozen=True)
class MappingStats:
    experiment_count: int = 0
    series_count: int = 0
    point_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "experimentCount": self.experiment_count,
            "seriesCount": self.series_count,
            "pointCount": self.point_count,
        }


@dataclass(frozen=True)
class ResolvedColumns:
    """Header names behind the selected column indices."""
    time: str
    values: list[str]
    experiment: str | None = None
    replicate: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MappingResult:
    dataset: Dataset | None
    errors: list[MappingError]
    stats: MappingStats
    resolved_columns: ResolvedColumns | None = None
    time_error_count: int = 0  # 時間列が解釈できず捨てた行の総数
    time: TimeNormalization | None = None  # to_dict では seconds を省略 (series 側に展開済)
    time_metrics: TimeMetrics | None = None

    @property
    def ok(self) -> bool:
        return self.dataset is not None

    @property
    def blocking_errors(self) -> list[MappingError]:
        """Selection errors that prevented any Dataset from being produced."""
        if self.dataset is not None:
            return []
        return list(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset": self.dataset.to_dict() if self.dataset is not None else None,
            "errors": [e.to_dict() for e in self.errors],
            "stats": self.stats.to_dict(),
            "resolvedColumns": (
                self.resolved_columns.to_dict() if self.resolved_columns is not None else None
            ),
            "timeErrorCount": self.time_error_count,
            "time": self.time.to_dict(include_seconds=False) if self.time is not None else None,
            "timeMetrics": self.time_metrics.to_dict() if self.time_metrics is not None else None,
        }
