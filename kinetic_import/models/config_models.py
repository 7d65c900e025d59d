from __future__ import annotations

from dataclasses import dataclass, field

from .time_axis import TimeUnit

"""Config dataclasses for the kinetic import pipeline.

These are the typed settings consumed by the mapping and validation services.
Loading and schema validation of the YAML file live in config/loader.py;
callers without a config file simply use ``IngestSettings()``.
"""

__all__ = [
    "ValidationSettings",
    "IngestSettings",
]


@dataclass(frozen=True)
class ValidationSettings:
    """Thresholds for the per-series rule checks."""
    min_points: int = 5  # これ未満で TOO_FEW_POINTS
    constant_signal_tolerance: float = 1e-6  # 母標準偏差がこれ以下なら CONSTANT_SIGNAL
    excel_serial_threshold: float = 1e4  # 日付シリアル値らしさの判定閾値


@dataclass(frozen=True)
class IngestSettings:
    """Root settings object for parsing and mapping."""
    timezone: str = "UTC"  # naive な日時文字列に適用するタイムゾーン
    default_time_unit: TimeUnit = TimeUnit.SECONDS
    unlabeled_experiment_label: str = "Unlabeled experiment"
    default_experiment_label: str = "Experiment 1"  # ファイル名もシート名も無い場合
    max_row_errors: int = 5  # 行番号をそのまま残す件数 (残りは件数に集約)
    validation: ValidationSettings = field(default_factory=ValidationSettings)
