from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Protocol

from ..models.advisory import (
    COLUMN_ROLES,
    CanonicalGroup,
    CanonicalValidation,
    ColumnProfile,
    ColumnScanRequest,
    ColumnScanResult,
)
from ..models.dataset import Dataset, Experiment
from ..models.mapping import MappingSelection
from ..models.raw_table import RawTable
from ..tabular.cells import cell_label, is_blank, parse_numeric_cell
from ..tabular.reader import apply_header_choice

"""Deterministic guard around advisory (model-backed) suggestions.

The library never calls a model itself. A caller-supplied AdvisoryClient answers
narrow requests; its raw responses are parsed and checked here before anything
is merged into a Dataset. Canonical value groupings must form an exact cover of
the raw values: every value maps to exactly one canonical label.
"""

__all__ = [
    "MAX_PROFILE_COLUMNS",
    "MAX_UNIQUE_VALUES",
    "AdvisoryClient",
    "AdvisoryResponseError",
    "CanonicalMappingError",
    "build_column_profiles",
    "build_column_scan_request",
    "accept_column_roles",
    "collect_unique_values",
    "parse_canonical_groups",
    "validate_canonical_assignments",
    "apply_canonical_map",
    "request_canonical_map",
]

logger = logging.getLogger(__name__)

MAX_PROFILE_COLUMNS = 500
MAX_EXAMPLES = 6
MAX_EXAMPLE_LENGTH = 120
MAX_UNIQUE_VALUES = 300


class AdvisoryResponseError(ValueError):
    """Raised when an advisory response does not have the expected shape."""


class CanonicalMappingError(ValueError):
    """Raised when an unvalidated canonical map is about to be merged."""


class AdvisoryClient(Protocol):
    """Request/response interface of a suggestion backend."""

    def suggest_column_roles(self, request: ColumnScanRequest) -> Mapping[str, Any]:
        ...

    def suggest_canonical_groups(self, column: str, values: list[str]) -> Mapping[str, Any]:
        ...


def _type_heuristic(values: list[Any]) -> str:
    present = [v for v in values if not is_blank(v)]
    if not present:
        return "text"
    numeric = sum(1 for v in present if parse_numeric_cell(v) is not None)
    if numeric == len(present):
        return "numeric"
    if numeric == 0:
        return "text"
    return "mixed"


def build_column_profiles(table: RawTable) -> list[ColumnProfile]:
    """Per-column summary (type heuristic, fill ratio, a few examples)."""
    profiles: list[ColumnProfile] = []
    total = len(table.rows)
    for index, header in enumerate(table.headers[:MAX_PROFILE_COLUMNS]):
        values = table.column(index)
        present = [v for v in values if not is_blank(v)]
        ratio = round(len(present) / total, 3) if total else 0.0
        examples: list[str] = []
        for value in present:
            if len(examples) >= MAX_EXAMPLES:
                break
            label = cell_label(value)[:MAX_EXAMPLE_LENGTH]
            if label and label not in examples:
                examples.append(label)
        profiles.append(
            ColumnProfile(
                name=header.strip() or f"Column {index + 1}",
                type_heuristic=_type_heuristic(values),
                non_null_ratio=min(1.0, max(0.0, ratio)),
                examples=examples,
            )
        )
    return profiles


def build_column_scan_request(
    table: RawTable,
    selection: MappingSelection,
    experiment_count: int | None = None,
    include_comments: bool = False,
) -> ColumnScanRequest:
    working = apply_header_choice(table, selection.use_header_row)
    structural = [
        working.headers[i]
        for i in sorted(selection.structural_columns)
        if 0 <= i < len(working.headers)
    ]
    return ColumnScanRequest(
        columns=build_column_profiles(working),
        known_structural_columns=structural,
        experiment_count=experiment_count,
        include_comments=include_comments,
    )


def _string_list(response: Mapping[str, Any], key: str) -> list[str]:
    raw = response.get(key, [])
    if not isinstance(raw, list):
        raise AdvisoryResponseError(f"'{key}' must be a list, got {type(raw).__name__}")
    return [str(item).strip() for item in raw if str(item).strip()]


def accept_column_roles(
    request: ColumnScanRequest, response: Mapping[str, Any]
) -> ColumnScanResult:
    """Keep only suggestions that refer to real, non-structural columns."""
    known = {c.name for c in request.columns}
    structural = set(request.known_structural_columns)
    allowed = known - structural

    selected = [c for c in dict.fromkeys(_string_list(response, "selectedColumns")) if c in allowed]
    raw_roles = response.get("columnRoles", {})
    if not isinstance(raw_roles, Mapping):
        raise AdvisoryResponseError("'columnRoles' must be an object")
    roles = {
        str(name): str(role)
        for name, role in raw_roles.items()
        if str(name) in allowed and str(role) in COLUMN_ROLES
    }
    factors = [c for c in dict.fromkeys(_string_list(response, "factorCandidates")) if c in allowed]
    rejected = set(_string_list(response, "selectedColumns")) - set(selected)
    if rejected:
        logger.warning("advisory suggested unknown or structural columns: %s", sorted(rejected))
    return ColumnScanResult(
        selected_columns=selected,
        column_roles=roles,
        factor_candidates=factors,
        notes=str(response.get("notes", "")),
        uncertainties=_string_list(response, "uncertainties"),
    )


def collect_unique_values(experiments: list[Experiment], column: str) -> list[str]:
    """Distinct string forms of ``meta_raw[column]``.

    Ordered by frequency (desc), ties by first-seen experiment; capped.
    """
    name = column.strip()
    if not name:
        return []
    counts: Counter[str] = Counter()
    for experiment in experiments:
        label = cell_label(experiment.meta_raw.get(name))
        if label:
            counts[label] += 1
    # Counter は挿入順を保持するので安定ソートで first-seen タイブレークになる
    ordered = sorted(counts, key=lambda v: -counts[v])
    return ordered[:MAX_UNIQUE_VALUES]


def parse_canonical_groups(response: Mapping[str, Any]) -> list[CanonicalGroup]:
    raw = response.get("canonicalToAliases")
    if not isinstance(raw, Mapping):
        raise AdvisoryResponseError("'canonicalToAliases' must be an object")
    groups = []
    for canonical, aliases in raw.items():
        if not isinstance(aliases, list):
            raise AdvisoryResponseError(f"aliases for '{canonical}' must be a list")
        groups.append(CanonicalGroup(canonical=str(canonical), aliases=[str(a) for a in aliases]))
    return groups


def validate_canonical_assignments(
    unique_values: list[str], groups: list[CanonicalGroup]
) -> CanonicalValidation:
    """Exact-cover check of canonical groups over the raw values."""
    value_set = set(unique_values)
    coverage: dict[str, str] = {}
    canonical_to_aliases: dict[str, list[str]] = {}
    errors: list[str] = []
    duplicates: list[str] = []
    extraneous: list[str] = []

    normalized = [
        CanonicalGroup(
            canonical=g.canonical.strip(),
            aliases=[a.strip() for a in g.aliases if a.strip()],
        )
        for g in groups
        if g.canonical.strip()
    ]
    if not normalized:
        errors.append("At least one canonical group is required")

    seen_canonical: set[str] = set()
    for group in normalized:
        if group.canonical in seen_canonical:
            errors.append(f"Canonical label duplicated: {group.canonical}")
        seen_canonical.add(group.canonical)

        aliases = list(dict.fromkeys(group.aliases))
        canonical_to_aliases[group.canonical] = aliases
        for alias in aliases:
            if alias not in value_set:
                extraneous.append(alias)
            elif alias in coverage:
                duplicates.append(alias)
            else:
                coverage[alias] = group.canonical

    missing = [v for v in unique_values if v not in coverage]

    if errors or missing or duplicates or extraneous:
        return CanonicalValidation(
            ok=False,
            errors=errors,
            missing=list(dict.fromkeys(missing)),
            duplicates=list(dict.fromkeys(duplicates)),
            extraneous=list(dict.fromkeys(extraneous)),
        )
    return CanonicalValidation(
        ok=True,
        canonical_to_aliases=canonical_to_aliases,
        raw_to_canonical=coverage,
    )


def apply_canonical_map(
    dataset: Dataset, column: str, validation: CanonicalValidation
) -> Dataset:
    """Return a new Dataset with ``meta_canonical[column]`` filled in.

    Raises:
        CanonicalMappingError: the validation did not pass the exact-cover check.
    """
    name = column.strip()
    if not validation.ok:
        raise CanonicalMappingError(
            f"canonical map for '{column}' failed validation: "
            f"missing={validation.missing} duplicates={validation.duplicates} "
            f"extraneous={validation.extraneous} errors={validation.errors}"
        )
    experiments = []
    for experiment in dataset.experiments:
        label = cell_label(experiment.meta_raw.get(name))
        canonical = dict(experiment.meta_canonical)
        if label in validation.raw_to_canonical:
            canonical[name] = validation.raw_to_canonical[label]
        experiments.append(replace(experiment, meta_canonical=canonical))
    return replace(dataset, experiments=experiments)


def request_canonical_map(
    client: AdvisoryClient, dataset: Dataset, column: str
) -> CanonicalValidation:
    """Ask the client for canonical groups and check them against the raw values."""
    values = collect_unique_values(dataset.experiments, column)
    response = client.suggest_canonical_groups(column, values)
    validation = validate_canonical_assignments(values, parse_canonical_groups(response))
    if not validation.ok:
        logger.warning(
            "canonical suggestion for column=%s rejected missing=%d duplicates=%d extraneous=%d",
            column,
            len(validation.missing),
            len(validation.duplicates),
            len(validation.extraneous),
        )
    return validation
