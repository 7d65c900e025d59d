from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Request/response models for advisory (model-backed) suggestions.

Suggestions are advisory text only. Anything taken from a response must first
pass the deterministic checks in services.advisory before it touches a Dataset.
"""

__all__ = [
    "ColumnProfile",
    "ColumnScanRequest",
    "ColumnScanResult",
    "CanonicalGroup",
    "CanonicalValidation",
    "COLUMN_ROLES",
]

COLUMN_ROLES = ("condition", "comment", "noise")


@dataclass(frozen=True)
class ColumnProfile:
    name: str
    type_heuristic: str  # numeric | text | mixed
    non_null_ratio: float
    examples: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "typeHeuristic": self.type_heuristic,
            "nonNullRatio": self.non_null_ratio,
            "examples": list(self.examples),
        }


@dataclass(frozen=True)
class ColumnScanRequest:
    """Read-only context handed to a column-role advisor."""
    columns: list[ColumnProfile]
    known_structural_columns: list[str]
    experiment_count: int | None = None
    include_comments: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "columns": [c.to_dict() for c in self.columns],
            "knownStructuralColumns": list(self.known_structural_columns),
            "experimentCount": self.experiment_count,
            "includeComments": self.include_comments,
        }


@dataclass(frozen=True)
class ColumnScanResult:
    selected_columns: list[str]
    column_roles: dict[str, str]
    factor_candidates: list[str] = field(default_factory=list)
    notes: str = ""
    uncertainties: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CanonicalGroup:
    """One proposed canonical label and the raw values it should absorb."""
    canonical: str
    aliases: list[str]


@dataclass(frozen=True)
class CanonicalValidation:
    """Outcome of the exact-cover check over raw values."""
    ok: bool
    errors: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    duplicates: list[str] = field(default_factory=list)
    extraneous: list[str] = field(default_factory=list)
    canonical_to_aliases: dict[str, list[str]] = field(default_factory=dict)
    raw_to_canonical: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {
                "ok": True,
                "canonicalToAliases": {k: list(v) for k, v in self.canonical_to_aliases.items()},
                "rawToCanonical": dict(self.raw_to_canonical),
            }
        return {
            "ok": False,
            "errors": list(self.errors),
            "missing": list(self.missing),
            "duplicates": list(self.duplicates),
            "extraneous": list(self.extraneous),
        }
