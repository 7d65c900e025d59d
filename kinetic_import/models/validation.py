from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

"""Validation report models.

Findings are data, never exceptions. Status values are always derived from
findings by escalation (see services.validation.resolve_status); nothing stores
a status independently of the findings it was computed from.
"""

__all__ = [
    "Severity",
    "ValidationStatus",
    "FindingCode",
    "FindingScope",
    "ValidationFinding",
    "ValidationCounts",
    "ExperimentSummary",
    "ValidationReport",
]


class Severity(Enum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class ValidationStatus(Enum):
    """Escalated status: error -> broken, any finding -> needs-info, none -> clean."""
    CLEAN = "clean"
    NEEDS_INFO = "needs-info"
    BROKEN = "broken"


class FindingCode(Enum):
    TIME_NOT_MONOTONIC = "TIME_NOT_MONOTONIC"
    TIME_DUPLICATES = "TIME_DUPLICATES"
    TOO_FEW_POINTS = "TOO_FEW_POINTS"
    NAN_OR_NONNUMERIC = "NAN_OR_NONNUMERIC"
    NEGATIVE_VALUES = "NEGATIVE_VALUES"
    CONSTANT_SIGNAL = "CONSTANT_SIGNAL"
    NO_EXPERIMENTS = "NO_EXPERIMENTS"


class FindingScope(Enum):
    DATASET = "dataset"
    SERIES = "series"


@dataclass(frozen=True)
class ValidationFinding:
    """Outcome of one rule check."""
    code: FindingCode
    severity: Severity
    scope: FindingScope
    title: str
    description: str
    hint: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    experiment_id: str | None = None
    experiment_name: str | None = None
    series_id: str | None = None
    series_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code.value,
            "severity": self.severity.value,
            "scope": self.scope.value,
            "title": self.title,
            "description": self.description,
        }
        if self.hint is not None:
            data["hint"] = self.hint
        if self.details:
            data["details"] = dict(self.details)
        if self.experiment_id is not None:
            data["experimentId"] = self.experiment_id
            data["experimentName"] = self.experiment_name
        if self.series_id is not None:
            data["seriesId"] = self.series_id
            data["seriesName"] = self.series_name
        return data


@dataclass(frozen=True)
class ValidationCounts:
    experiments: int
    series: int
    points: int
    dropped_points: int

    def to_dict(self) -> dict[str, int]:
        return {
            "experiments": self.experiments,
            "series": self.series,
            "points": self.points,
            "droppedPoints": self.dropped_points,
        }


@dataclass(frozen=True)
class ExperimentSummary:
    experiment_id: str
    experiment_name: str
    status: ValidationStatus
    findings: list[ValidationFinding]
    series_status: dict[str, ValidationStatus] = field(default_factory=dict)  # series id -> status

    def to_dict(self) -> dict[str, Any]:
        return {
            "experimentId": self.experiment_id,
            "experimentName": self.experiment_name,
            "status": self.status.value,
            "findings": [f.to_dict() for f in self.findings],
            "seriesStatus": {k: v.value for k, v in self.series_status.items()},
        }


@dataclass(frozen=True)
class ValidationReport:
    status: ValidationStatus
    counts: ValidationCounts
    dataset_findings: list[ValidationFinding]
    experiment_summaries: list[ExperimentSummary]

    def all_findings(self) -> list[ValidationFinding]:
        """Dataset findings followed by every experiment's findings, in order."""
        findings = list(self.dataset_findings)
        for summary in self.experiment_summaries:
            findings.extend(summary.findings)
        return findings

    @property
    def blocks_progress(self) -> bool:
        # error 重大度のみが後続処理をブロックする
        return self.status is ValidationStatus.BROKEN

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "counts": self.counts.to_dict(),
            "datasetFindings": [f.to_dict() for f in self.dataset_findings],
            "experimentSummaries": [s.to_dict() for s in self.experiment_summaries],
        }
