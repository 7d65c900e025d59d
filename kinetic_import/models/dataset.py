from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .raw_table import Cell

"""Dataset domain models produced by the mapping engine.

Dataset -> Experiment -> Series. A Series keeps its points in row-encounter order;
time monotonicity is not enforced here, only reported later by validation.
"""

__all__ = [
    "SeriesMeta",
    "Series",
    "MetaConsistency",
    "Experiment",
    "Dataset",
]


@dataclass(frozen=True)
class SeriesMeta:
    dropped_points: int  # 値セルが数値化できなかった点数
    value_column: str
    replicate: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "droppedPoints": self.dropped_points,
            "valueColumn": self.value_column,
            "replicate": self.replicate,
        }


@dataclass(frozen=True)
class Series:
    """One time/value curve belonging to an Experiment."""
    id: str
    name: str
    time: list[float]
    y: list[float]
    meta: SeriesMeta

    def __post_init__(self) -> None:
        if len(self.time) != len(self.y):
            raise ValueError(
                f"series '{self.name}' has {len(self.time)} time values but {len(self.y)} y values"
            )

    @property
    def point_count(self) -> int:
        return len(self.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "time": list(self.time),
            "y": list(self.y),
            "meta": self.meta.to_dict(),
        }


@dataclass(frozen=True)
class MetaConsistency:
    """Whether all rows of an experiment agreed on a metadata column."""
    consistent: bool
    distinct_values: list[str | int | float]  # first-seen order

    def to_dict(self) -> dict[str, Any]:
        return {"consistent": self.consistent, "distinctValues": list(self.distinct_values)}


@dataclass(frozen=True)
class Experiment:
    """A named group of Series sharing metadata."""
    id: str
    name: str
    series: list[Series]
    meta_raw: dict[str, Cell] = field(default_factory=dict)
    meta_consistency: dict[str, MetaConsistency] = field(default_factory=dict)
    # canonical labels accepted through the exact-cover guard only
    meta_canonical: dict[str, str] = field(default_factory=dict)

    @property
    def point_count(self) -> int:
        return sum(s.point_count for s in self.series)

    @property
    def dropped_points(self) -> int:
        return sum(s.meta.dropped_points for s in self.series)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "series": [s.to_dict() for s in self.series],
            "metaRaw": dict(self.meta_raw),
            "metaConsistency": {k: v.to_dict() for k, v in self.meta_consistency.items()},
            "metaCanonical": dict(self.meta_canonical),
        }


@dataclass(frozen=True)
class Dataset:
    id: str
    name: str
    created_at: str  # ISO8601 UTC
    experiments: list[Experiment]

    @property
    def series_count(self) -> int:
        return sum(len(e.series) for e in self.experiments)

    @property
    def point_count(self) -> int:
        return sum(e.point_count for e in self.experiments)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "experiments": [e.to_dict() for e in self.experiments],
        }
