from __future__ import annotations

import doctest
import re

from kinetic_import.models.error_record import ErrorRecord
from kinetic_import.models.processing_result import ImportOutcome, ImportStage
from kinetic_import.models.validation import ValidationCounts, ValidationReport, ValidationStatus
from kinetic_import.services import summary
from kinetic_import.services.summary import render_summary_line

"""Unit tests for summary rendering."""

SUMMARY_PATTERN = re.compile(
    r"^SUMMARY file=(\S+) experiments=([0-9]+) series=([0-9]+) points=([0-9]+) "
    r"dropped=([0-9]+) status=(clean|needs-info|broken)$"
)


def _report(status: ValidationStatus) -> ValidationReport:
    return ValidationReport(
        status=status,
        counts=ValidationCounts(experiments=2, series=3, points=40, dropped_points=1),
        dataset_findings=[],
        experiment_summaries=[],
    )


def test_render_summary_line_validated():
    outcome = ImportOutcome(
        file_name="run.csv",
        stage=ImportStage.VALIDATED,
        report=_report(ValidationStatus.NEEDS_INFO),
    )
    line = render_summary_line(outcome)
    match = SUMMARY_PATTERN.match(line)
    assert match, f"SUMMARY line should match regex: {line}"
    assert match.groups() == ("run.csv", "2", "3", "40", "1", "needs-info")


def test_render_summary_line_failed_stage():
    error = ErrorRecord.create(
        file="run.pdf", sheet="<FILE_LEVEL>", row=-1, error_type="UNSUPPORTED_FILE_TYPE", message="x"
    )
    outcome = ImportOutcome(file_name="run.pdf", stage=ImportStage.PARSE, errors=[error])
    assert render_summary_line(outcome) == "SUMMARY file=run.pdf stage=parse status=failed errors=1"


def test_render_summary_docstring_example():
    results = doctest.testmod(summary)
    assert results.failed == 0
    assert results.attempted > 0
