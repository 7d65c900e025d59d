from __future__ import annotations

import logging
import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import cast

from ..models.config_models import IngestSettings
from ..models.dataset import Dataset, Experiment, MetaConsistency, Series, SeriesMeta
from ..models.mapping import (
    MappingError,
    MappingResult,
    MappingSelection,
    MappingStats,
    ResolvedColumns,
)
from ..models.raw_table import Cell, RawTable
from ..models.time_axis import TimeType
from ..tabular.cells import cell_label, is_blank, parse_numeric_cell, row_has_content
from ..tabular.reader import apply_header_choice
from ..tabular.time import (
    compute_time_metrics,
    detect_declared_unit,
    detect_time_type,
    normalize_time_to_seconds,
    parse_time_cell,
)

"""Mapping engine: RawTable + MappingSelection -> Dataset.

Single pass over the data rows:
1. parse the time cell; an unparsable time discards the whole row
2. resolve the experiment label and get-or-create the Experiment
3. every value column independently: append the point, or count it as dropped
4. fold the remaining (metadata) columns into the Experiment

Experiments and Series live in insertion-ordered registries keyed by label, so
their order is the first-seen row order and is stable from run to run.
"""

__all__ = [
    "apply_mapping",
    "validate_selection",
    "fold_metadata",
]

logger = logging.getLogger(__name__)

TIME_ERROR_TYPE = "TIME_NOT_PARSEABLE"

SeriesKey = tuple[str, str | None]  # (value column name, replicate label)


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def _utc_now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass
class _SeriesBuilder:
    name: str
    value_column: str
    replicate: str | None
    time: list[float] = field(default_factory=list)
    y: list[float] = field(default_factory=list)
    dropped_points: int = 0

    def build(self) -> Series:
        return Series(
            id=_new_id("series"),
            name=self.name,
            time=list(self.time),
            y=list(self.y),
            meta=SeriesMeta(
                dropped_points=self.dropped_points,
                value_column=self.value_column,
                replicate=self.replicate,
            ),
        )


@dataclass
class _ExperimentBuilder:
    name: str
    series: dict[SeriesKey, _SeriesBuilder] = field(default_factory=dict)
    meta_values: dict[str, list[Cell]] = field(default_factory=dict)

    def series_for(self, value_column: str, replicate: str | None) -> _SeriesBuilder:
        key = (value_column, replicate)
        builder = self.series.get(key)
        if builder is None:
            name = value_column if replicate is None else f"{value_column} (rep {replicate})"
            builder = _SeriesBuilder(name=name, value_column=value_column, replicate=replicate)
            self.series[key] = builder
        return builder

    def build(self) -> Experiment:
        meta_raw: dict[str, Cell] = {}
        meta_consistency: dict[str, MetaConsistency] = {}
        for column, values in self.meta_values.items():
            meta_raw[column], meta_consistency[column] = fold_metadata(values)
        return Experiment(
            id=_new_id("exp"),
            name=self.name,
            series=[b.build() for b in self.series.values()],
            meta_raw=meta_raw,
            meta_consistency=meta_consistency,
        )


def fold_metadata(values: list[Cell]) -> tuple[Cell, MetaConsistency]:
    """Pick the representative value of a metadata column for one experiment.

    Most frequent non-blank value wins; ties go to the value seen first.
    All distinct values are kept in first-seen order.
    """
    present = [v for v in values if not is_blank(v)]
    if not present:
        return None, MetaConsistency(consistent=True, distinct_values=[])

    counts = Counter(present)
    distinct = list(dict.fromkeys(present))
    selected = distinct[0]
    for candidate in distinct[1:]:
        if counts[candidate] > counts[selected]:
            selected = candidate
    return selected, MetaConsistency(consistent=len(distinct) == 1, distinct_values=distinct)


def validate_selection(selection: MappingSelection, column_count: int) -> list[MappingError]:
    """Blocking configuration errors for a selection (empty list when usable)."""
    errors: list[MappingError] = []
    if selection.time_column is None:
        errors.append(MappingError(-1, "time", "NO_TIME_COLUMN", "Select a time column."))
    if not selection.value_columns:
        errors.append(
            MappingError(-1, "value", "NO_VALUE_COLUMNS", "Select at least one value column.")
        )
    named = [
        ("time", selection.time_column),
        ("experiment", selection.experiment_column),
        ("replicate", selection.replicate_column),
        *[("value", idx) for idx in selection.value_columns],
    ]
    for role, idx in named:
        if idx is not None and not 0 <= idx < column_count:
            errors.append(
                MappingError(
                    -1,
                    role,
                    "COLUMN_OUT_OF_RANGE",
                    f"{role} column index {idx} is outside 0..{column_count - 1}.",
                )
            )
    return errors


def _time_errors(
    rows: list[int], column: str, time_type: TimeType, cap: int
) -> list[MappingError]:
    if time_type is TimeType.DATETIME:
        message = "Time value must be a date/time."
    else:
        message = "Time value must be numeric."
    errors = [MappingError(row, column, TIME_ERROR_TYPE, message) for row in rows[:cap]]
    remaining = len(rows) - min(cap, len(rows))
    if remaining > 0:
        errors.append(
            MappingError(
                -1, column, TIME_ERROR_TYPE, f"{remaining} more rows with unparsable time values."
            )
        )
    return errors


def apply_mapping(
    table: RawTable,
    selection: MappingSelection,
    file_name: str,
    *,
    dataset_id: str | None = None,
    created_at: str | None = None,
    settings: IngestSettings | None = None,
) -> MappingResult:
    """Build a Dataset from a RawTable and the user's column selection.

    Blocking selection errors return ``dataset=None`` with the error list.
    Unparsable time cells drop their row (capped verbatim row numbers plus one
    roll-up entry); unparsable value cells only drop that point.
    """
    settings = settings or IngestSettings()
    working = apply_header_choice(table, selection.use_header_row)
    headers = working.headers

    errors = validate_selection(selection, len(headers))
    if errors:
        logger.debug("mapping rejected file=%s errors=%s", file_name, [e.error_type for e in errors])
        return MappingResult(dataset=None, errors=errors, stats=MappingStats())

    # validate_selection がここで None を弾いている
    time_idx = cast(int, selection.time_column)
    value_indices = list(dict.fromkeys(selection.value_columns))
    exp_idx = selection.experiment_column
    rep_idx = selection.replicate_column
    structural = {time_idx, *value_indices}
    structural.update(i for i in (exp_idx, rep_idx) if i is not None)
    meta_indices = [i for i in range(len(headers)) if i not in structural]

    time_header = headers[time_idx]
    content_rows = [(n, row) for n, row in enumerate(working.rows, start=1) if row_has_content(row)]

    time_type = detect_time_type([row[time_idx] for _, row in content_rows], settings.timezone)
    declared_unit = detect_declared_unit(time_header)
    selected_unit = selection.time_unit or settings.default_time_unit

    # pass 1: 時間セルの解釈 (失敗した行は全値列から除外)
    accepted: list[tuple[int, list[Cell], float]] = []
    failed_rows: list[int] = []
    for row_number, row in content_rows:
        raw_time = parse_time_cell(row[time_idx], time_type, settings.timezone)
        if raw_time is None:
            failed_rows.append(row_number)
            continue
        accepted.append((row_number, row, raw_time))

    normalization = normalize_time_to_seconds(
        [raw for _, _, raw in accepted],
        time_type,
        selected_unit,
        declared_unit,
        timezone=settings.timezone,
        excel_serial_threshold=settings.validation.excel_serial_threshold,
    )
    if normalization.excel_like:
        logger.warning(
            "time column '%s' looks like spreadsheet date serials; check the time unit", time_header
        )

    if exp_idx is None:
        fixed_label = working.sheet_name or file_name or settings.default_experiment_label
    else:
        fixed_label = None

    # pass 2: 実験/系列の組み立て
    experiments: dict[str, _ExperimentBuilder] = {}
    for (_, row, _), seconds in zip(accepted, normalization.seconds, strict=True):
        if fixed_label is not None:
            label = fixed_label
        else:
            label = cell_label(row[exp_idx]) or settings.unlabeled_experiment_label
        experiment = experiments.get(label)
        if experiment is None:
            experiment = _ExperimentBuilder(name=label)
            experiments[label] = experiment

        replicate = None
        if rep_idx is not None:
            replicate = cell_label(row[rep_idx]) or None
        for value_idx in value_indices:
            series = experiment.series_for(headers[value_idx], replicate)
            value = parse_numeric_cell(row[value_idx])
            if value is None:
                series.dropped_points += 1
                continue
            series.time.append(seconds)
            series.y.append(value)

        for meta_idx in meta_indices:
            experiment.meta_values.setdefault(headers[meta_idx], []).append(row[meta_idx])

    built = [builder.build() for builder in experiments.values()]
    dataset = Dataset(
        id=dataset_id or _new_id("dataset"),
        name=file_name,
        created_at=created_at or _utc_now_iso(),
        experiments=built,
    )
    stats = MappingStats(
        experiment_count=len(built),
        series_count=dataset.series_count,
        point_count=dataset.point_count,
    )

    row_errors = _time_errors(failed_rows, time_header, time_type, settings.max_row_errors)
    if failed_rows:
        logger.warning(
            "file=%s column=%s dropped %d rows with unparsable time values",
            file_name,
            time_header,
            len(failed_rows),
        )
    logger.info(
        "mapped file=%s experiments=%d series=%d points=%d time_type=%s",
        file_name,
        stats.experiment_count,
        stats.series_count,
        stats.point_count,
        normalization.time_type.value,
    )

    return MappingResult(
        dataset=dataset,
        errors=row_errors,
        stats=stats,
        resolved_columns=ResolvedColumns(
            time=time_header,
            values=[headers[i] for i in value_indices],
            experiment=headers[exp_idx] if exp_idx is not None else None,
            replicate=headers[rep_idx] if rep_idx is not None else None,
        ),
        time_error_count=len(failed_rows),
        time=normalization,
        time_metrics=compute_time_metrics(normalization.seconds),
    )
