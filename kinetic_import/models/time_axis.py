from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Time-axis models: column type, units and the normalization result."""

__all__ = [
    "TimeType",
    "TimeUnit",
    "UNIT_FACTORS",
    "TimeNormalization",
    "TimeMetrics",
]


class TimeType(Enum):
    """Detected kind of a raw time column."""
    NUMERIC = "numeric"
    DATETIME = "datetime"
    INVALID = "invalid"


class TimeUnit(Enum):
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"

    @property
    def factor(self) -> float:
        return UNIT_FACTORS[self]


UNIT_FACTORS: dict[TimeUnit, float] = {
    TimeUnit.SECONDS: 1,
    TimeUnit.MINUTES: 60,
    TimeUnit.HOURS: 3600,
    TimeUnit.DAYS: 86400,
}


@dataclass(frozen=True)
class TimeNormalization:
    """Elapsed seconds for a time column plus how they were obtained.

    reference_timestamp is the first encountered timestamp (epoch milliseconds)
    for datetime columns, None otherwise.
    """
    seconds: list[float]
    time_type: TimeType
    excel_like: bool  # looks like a spreadsheet date serial (informational)
    used_unit: TimeUnit
    reference_timestamp: float | None = None

    def to_dict(self, include_seconds: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.time_type.value,
            "excelLike": self.excel_like,
            "usedUnit": self.used_unit.value,
            "referenceTimestamp": self.reference_timestamp,
        }
        if include_seconds:
            data["seconds"] = list(self.seconds)
        return data


@dataclass(frozen=True)
class TimeMetrics:
    """Descriptive statistics of a normalized time axis."""
    points: int
    min_time: float
    max_time: float
    dt_min: float  # smallest positive step
    dt_median: float  # median positive step
    monotonic: bool
    positive_diffs: list[float] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "points": self.points,
            "minTime": self.min_time,
            "maxTime": self.max_time,
            "dtMin": self.dt_min,
            "dtMedian": self.dt_median,
            "monotonic": self.monotonic,
        }
