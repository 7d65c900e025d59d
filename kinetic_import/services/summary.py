from __future__ import annotations

from ..models.processing_result import ImportOutcome

"""Summary line rendering for one import run."""


def render_summary_line(outcome: ImportOutcome) -> str:
    """Render the SUMMARY line for an ImportOutcome.

    Format:
    SUMMARY file={name} experiments={n} series={n} points={n} dropped={n} status={status}

    When the run stopped before validation the counts are omitted:
    SUMMARY file={name} stage={stage} status=failed errors={n}

    Examples:
        >>> from kinetic_import.models.processing_result import ImportOutcome, ImportStage
        >>> render_summary_line(ImportOutcome(file_name="a.txt", stage=ImportStage.PARSE))
        'SUMMARY file=a.txt stage=parse status=failed errors=0'
    """
    if outcome.report is None:
        return (
            f"SUMMARY file={outcome.file_name} "
            f"stage={outcome.stage.value} "
            f"status=failed "
            f"errors={len(outcome.errors)}"
        )
    counts = outcome.report.counts
    return (
        f"SUMMARY file={outcome.file_name} "
        f"experiments={counts.experiments} "
        f"series={counts.series} "
        f"points={counts.points} "
        f"dropped={counts.dropped_points} "
        f"status={outcome.report.status.value}"
    )
