from __future__ import annotations

import json

import pytest

from kinetic_import.models.config_models import ValidationSettings
from kinetic_import.models.validation import FindingCode, FindingScope, Severity, ValidationStatus
from kinetic_import.services.validation import (
    build_validation_report,
    resolve_status,
    series_findings,
)

"""Unit tests for the validation engine and its status escalation."""


def _codes(findings):
    return [f.code for f in findings]


def test_clean_series_has_no_findings(series_factory, experiment_factory, dataset_factory):
    series = series_factory([0, 1, 2, 3, 4], [1, 2, 3, 4, 5])
    report = build_validation_report(dataset_factory(experiment_factory("A", series)))
    assert report.status is ValidationStatus.CLEAN
    assert report.all_findings() == []
    assert report.blocks_progress is False
    assert report.experiment_summaries[0].series_status == {"series-1": ValidationStatus.CLEAN}


def test_time_not_monotonic_single_issue(series_factory, experiment_factory):
    series = series_factory([0, 2, 1, 3, 4], [1, 2, 3, 4, 5])
    findings = series_findings(series, experiment_factory("A", series))
    assert _codes(findings) == [FindingCode.TIME_NOT_MONOTONIC]
    finding = findings[0]
    assert finding.severity is Severity.ERROR
    assert finding.scope is FindingScope.SERIES
    assert finding.details == {"timeIssueCount": 1}
    assert finding.experiment_name == "A"
    assert finding.series_id == "series-1"


def test_duplicates_also_break_monotonicity(series_factory, experiment_factory):
    series = series_factory([0, 1, 1, 2, 3], [1, 2, 3, 4, 5])
    findings = series_findings(series, experiment_factory("A", series))
    assert _codes(findings) == [FindingCode.TIME_NOT_MONOTONIC, FindingCode.TIME_DUPLICATES]
    assert findings[1].details == {"duplicateCount": 1}
    assert findings[1].severity is Severity.WARN


@pytest.mark.parametrize("points,flagged", [(4, True), (5, False), (6, False)])
def test_too_few_points_boundary(points, flagged, series_factory, experiment_factory):
    series = series_factory(list(range(points)), [float(i + 1) for i in range(points)])
    findings = series_findings(series, experiment_factory("A", series))
    assert (FindingCode.TOO_FEW_POINTS in _codes(findings)) is flagged
    if flagged:
        too_few = next(f for f in findings if f.code is FindingCode.TOO_FEW_POINTS)
        assert too_few.details == {"pointCount": points}


def test_min_points_from_settings(series_factory, experiment_factory):
    series = series_factory([0, 1, 2], [1, 2, 3])
    settings = ValidationSettings(min_points=3)
    assert series_findings(series, experiment_factory("A", series), settings) == []


def test_dropped_points_negative_and_constant(series_factory, experiment_factory):
    series = series_factory([0, 1, 2, 3, 4], [-1, -1, -1, -1, -1], dropped=2)
    findings = series_findings(series, experiment_factory("A", series))
    assert _codes(findings) == [
        FindingCode.NAN_OR_NONNUMERIC,
        FindingCode.NEGATIVE_VALUES,
        FindingCode.CONSTANT_SIGNAL,
    ]
    assert findings[0].details == {"droppedPoints": 2}
    assert findings[1].details == {"negativeCount": 5}
    assert findings[1].severity is Severity.INFO
    assert findings[2].details == {"stddev": 0.0}


def test_constant_signal_needs_two_points(series_factory, experiment_factory):
    series = series_factory([0], [3])
    codes = _codes(series_findings(series, experiment_factory("A", series)))
    assert FindingCode.CONSTANT_SIGNAL not in codes
    assert codes == [FindingCode.TOO_FEW_POINTS]


def test_empty_series_with_dropped_points(series_factory, experiment_factory):
    series = series_factory([], [], dropped=3)
    codes = _codes(series_findings(series, experiment_factory("A", series)))
    assert codes == [FindingCode.TOO_FEW_POINTS, FindingCode.NAN_OR_NONNUMERIC]


def test_no_experiments_is_dataset_error(dataset_factory):
    report = build_validation_report(dataset_factory())
    assert report.status is ValidationStatus.BROKEN
    assert report.blocks_progress is True
    assert _codes(report.dataset_findings) == [FindingCode.NO_EXPERIMENTS]
    assert report.dataset_findings[0].scope is FindingScope.DATASET
    assert report.counts.experiments == 0


def test_one_error_anywhere_breaks_report(series_factory, experiment_factory, dataset_factory):
    clean = [
        experiment_factory(f"clean-{i}", series_factory([0, 1, 2, 3, 4], [1, 2, 3, 4, 5]))
        for i in range(3)
    ]
    broken = experiment_factory("bad", series_factory([0, 2, 1, 3, 4], [1, 2, 3, 4, 5]))
    report = build_validation_report(dataset_factory(*clean, broken))

    assert report.status is ValidationStatus.BROKEN
    assert [s.status for s in report.experiment_summaries] == [
        ValidationStatus.CLEAN,
        ValidationStatus.CLEAN,
        ValidationStatus.CLEAN,
        ValidationStatus.BROKEN,
    ]


def test_warnings_only_need_info(series_factory, experiment_factory, dataset_factory):
    exp = experiment_factory("A", series_factory([0, 1], [1, 2]))
    report = build_validation_report(dataset_factory(exp))
    assert report.status is ValidationStatus.NEEDS_INFO
    assert report.blocks_progress is False


def test_counts_are_plain_sums(series_factory, experiment_factory, dataset_factory):
    a = experiment_factory(
        "A",
        series_factory([0, 1, 2], [1, 2, 3], dropped=1, series_id="s1"),
        series_factory([0, 1], [1, 2], dropped=2, series_id="s2"),
    )
    b = experiment_factory("B", series_factory([0], [1], series_id="s3"))
    counts = build_validation_report(dataset_factory(a, b)).counts
    assert (counts.experiments, counts.series, counts.points, counts.dropped_points) == (2, 3, 6, 3)


def test_resolve_status_escalation(series_factory, experiment_factory):
    assert resolve_status([]) is ValidationStatus.CLEAN
    series = series_factory([0, 1], [-1, 2])
    info_only = [
        f
        for f in series_findings(series, experiment_factory("A", series))
        if f.severity is Severity.INFO
    ]
    assert resolve_status(info_only) is ValidationStatus.NEEDS_INFO


def test_report_to_dict_is_json_serializable(series_factory, experiment_factory, dataset_factory):
    exp = experiment_factory("A", series_factory([0, 0], [1, 1]))
    payload = json.loads(json.dumps(build_validation_report(dataset_factory(exp)).to_dict()))
    assert payload["status"] == "broken"
    assert payload["counts"] == {"experiments": 1, "series": 1, "points": 2, "droppedPoints": 0}
    codes = [f["code"] for f in payload["experimentSummaries"][0]["findings"]]
    assert codes == ["TIME_NOT_MONOTONIC", "TIME_DUPLICATES", "TOO_FEW_POINTS", "CONSTANT_SIGNAL"]
    assert payload["experimentSummaries"][0]["seriesStatus"] == {"series-1": "broken"}
