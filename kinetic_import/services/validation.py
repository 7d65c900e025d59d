from __future__ import annotations

import logging
import statistics
from collections.abc import Callable, Iterable

from ..models.config_models import ValidationSettings
from ..models.dataset import Dataset, Experiment, Series
from ..models.validation import (
    ExperimentSummary,
    FindingCode,
    FindingScope,
    Severity,
    ValidationCounts,
    ValidationFinding,
    ValidationReport,
    ValidationStatus,
)

"""Validation engine: rule checks over a Dataset and status escalation.

Every check is pure, independent and always runs; each returns at most one
finding. Findings on the same series may co-exist and are never deduplicated.

Escalation (series, experiment and dataset scope alike):
    any error finding -> broken, any finding -> needs-info, none -> clean
"""

__all__ = [
    "SeriesCheck",
    "SERIES_CHECKS",
    "check_time_not_monotonic",
    "check_time_duplicates",
    "check_too_few_points",
    "check_nan_or_nonnumeric",
    "check_negative_values",
    "check_constant_signal",
    "check_no_experiments",
    "series_findings",
    "dataset_findings",
    "resolve_status",
    "compute_counts",
    "build_validation_report",
]

logger = logging.getLogger(__name__)

SeriesCheck = Callable[[Series, Experiment, ValidationSettings], ValidationFinding | None]


def _series_finding(
    series: Series,
    experiment: Experiment,
    code: FindingCode,
    severity: Severity,
    title: str,
    description: str,
    hint: str,
    details: dict[str, object] | None = None,
) -> ValidationFinding:
    return ValidationFinding(
        code=code,
        severity=severity,
        scope=FindingScope.SERIES,
        title=title,
        description=description,
        hint=hint,
        details=details or {},
        experiment_id=experiment.id,
        experiment_name=experiment.name,
        series_id=series.id,
        series_name=series.name,
    )


def check_time_not_monotonic(
    series: Series, experiment: Experiment, settings: ValidationSettings
) -> ValidationFinding | None:
    issues = sum(1 for prev, cur in zip(series.time, series.time[1:]) if cur <= prev)
    if issues == 0:
        return None
    return _series_finding(
        series,
        experiment,
        FindingCode.TIME_NOT_MONOTONIC,
        Severity.ERROR,
        "Time values go backwards",
        "The time column does not increase at least once. Kinetic analysis requires "
        "time values to increase steadily.",
        "Sort or correct the time column for this series before continuing.",
        {"timeIssueCount": issues},
    )


def check_time_duplicates(
    series: Series, experiment: Experiment, settings: ValidationSettings
) -> ValidationFinding | None:
    duplicates = len(series.time) - len(set(series.time))
    if duplicates == 0:
        return None
    return _series_finding(
        series,
        experiment,
        FindingCode.TIME_DUPLICATES,
        Severity.WARN,
        "Duplicate time points",
        "Two or more rows share the same time value. This can distort fits or averaging.",
        "Consider averaging duplicates or removing extra rows.",
        {"duplicateCount": duplicates},
    )


def check_too_few_points(
    series: Series, experiment: Experiment, settings: ValidationSettings
) -> ValidationFinding | None:
    points = len(series.time)
    if points >= settings.min_points:
        return None
    return _series_finding(
        series,
        experiment,
        FindingCode.TOO_FEW_POINTS,
        Severity.WARN,
        "Too few time points",
        f"This series contains fewer than {settings.min_points} measurements, "
        "which limits kinetic fitting.",
        "Collect more points or treat this series as qualitative.",
        {"pointCount": points},
    )


def check_nan_or_nonnumeric(
    series: Series, experiment: Experiment, settings: ValidationSettings
) -> ValidationFinding | None:
    dropped = series.meta.dropped_points
    if dropped <= 0:
        return None
    return _series_finding(
        series,
        experiment,
        FindingCode.NAN_OR_NONNUMERIC,
        Severity.WARN,
        "Invalid data points removed",
        "Some rows contained text or empty values where numbers were expected. "
        "These points were ignored during import.",
        "Check the original file to ensure numeric values in the signal column.",
        {"droppedPoints": dropped},
    )


def check_negative_values(
    series: Series, experiment: Experiment, settings: ValidationSettings
) -> ValidationFinding | None:
    negatives = sum(1 for value in series.y if value < 0)
    if negatives == 0:
        return None
    return _series_finding(
        series,
        experiment,
        FindingCode.NEGATIVE_VALUES,
        Severity.INFO,
        "Negative signal values",
        "Some signal values are below zero. This can be normal depending on baseline correction.",
        "Confirm whether negative values are expected or if the baseline needs adjustment.",
        {"negativeCount": negatives},
    )


def check_constant_signal(
    series: Series, experiment: Experiment, settings: ValidationSettings
) -> ValidationFinding | None:
    if len(series.y) < 2:
        return None
    stddev = statistics.pstdev(series.y)
    if stddev > settings.constant_signal_tolerance:
        return None
    return _series_finding(
        series,
        experiment,
        FindingCode.CONSTANT_SIGNAL,
        Severity.INFO,
        "Signal is nearly constant",
        "The signal changes very little over time, which may indicate no reaction "
        "or a measurement issue.",
        "Verify that the signal should change for this experiment.",
        {"stddev": stddev},
    )


def check_no_experiments(dataset: Dataset) -> ValidationFinding | None:
    if dataset.experiments:
        return None
    return ValidationFinding(
        code=FindingCode.NO_EXPERIMENTS,
        severity=Severity.ERROR,
        scope=FindingScope.DATASET,
        title="No experiments created",
        description="The mapping did not produce any experiments from the uploaded file.",
        hint="Review the experiment column or ensure rows contain data.",
    )


SERIES_CHECKS: tuple[SeriesCheck, ...] = (
    check_time_not_monotonic,
    check_time_duplicates,
    check_too_few_points,
    check_nan_or_nonnumeric,
    check_negative_values,
    check_constant_signal,
)


def series_findings(
    series: Series, experiment: Experiment, settings: ValidationSettings | None = None
) -> list[ValidationFinding]:
    """Run every series check; keep the ones that produced a finding."""
    settings = settings or ValidationSettings()
    findings = []
    for check in SERIES_CHECKS:
        finding = check(series, experiment, settings)
        if finding is not None:
            findings.append(finding)
    return findings


def dataset_findings(dataset: Dataset) -> list[ValidationFinding]:
    finding = check_no_experiments(dataset)
    return [finding] if finding is not None else []


def resolve_status(findings: Iterable[ValidationFinding]) -> ValidationStatus:
    findings = list(findings)
    if any(f.severity is Severity.ERROR for f in findings):
        return ValidationStatus.BROKEN
    if findings:
        return ValidationStatus.NEEDS_INFO
    return ValidationStatus.CLEAN


def compute_counts(dataset: Dataset) -> ValidationCounts:
    return ValidationCounts(
        experiments=len(dataset.experiments),
        series=dataset.series_count,
        points=dataset.point_count,
        dropped_points=sum(e.dropped_points for e in dataset.experiments),
    )


def build_validation_report(
    dataset: Dataset, settings: ValidationSettings | None = None
) -> ValidationReport:
    """Run the full battery of checks and assemble the escalated report."""
    settings = settings or ValidationSettings()
    top_level = dataset_findings(dataset)

    summaries: list[ExperimentSummary] = []
    for experiment in dataset.experiments:
        exp_findings: list[ValidationFinding] = []
        series_status: dict[str, ValidationStatus] = {}
        for series in experiment.series:
            found = series_findings(series, experiment, settings)
            series_status[series.id] = resolve_status(found)
            exp_findings.extend(found)
        summaries.append(
            ExperimentSummary(
                experiment_id=experiment.id,
                experiment_name=experiment.name,
                status=resolve_status(exp_findings),
                findings=exp_findings,
                series_status=series_status,
            )
        )

    all_findings = list(top_level)
    for summary in summaries:
        all_findings.extend(summary.findings)
    report = ValidationReport(
        status=resolve_status(all_findings),
        counts=compute_counts(dataset),
        dataset_findings=top_level,
        experiment_summaries=summaries,
    )
    logger.debug(
        "validated dataset=%s status=%s findings=%d",
        dataset.name,
        report.status.value,
        len(all_findings),
    )
    return report
