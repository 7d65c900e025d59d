from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from kinetic_import.models.config_models import IngestSettings, ValidationSettings
from kinetic_import.models.time_axis import TimeUnit
from kinetic_import.tabular.time import check_timezone

"""Config loader.

Responsibilities:
- Load a YAML settings file (e.g. config/ingest.yml)
- Validate it against the bundled JSON schema (ingest_schema.json)
- Reject timezone names pandas cannot localize to
- Apply defaults for every key that is absent
"""

__all__ = [
    "ConfigError",
    "SCHEMA_PATH",
    "load_config",
    "settings_from_dict",
]

SCHEMA_PATH = Path(__file__).parent / "ingest_schema.json"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data violates the schema (unknown keys, wrong types, ...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def settings_from_dict(data: dict[str, Any]) -> IngestSettings:
    """Build IngestSettings from already-validated config data."""
    defaults = IngestSettings()
    val_raw = data.get("validation") or {}
    val_defaults = ValidationSettings()
    validation = ValidationSettings(
        min_points=val_raw.get("min_points", val_defaults.min_points),
        constant_signal_tolerance=float(
            val_raw.get("constant_signal_tolerance", val_defaults.constant_signal_tolerance)
        ),
        excel_serial_threshold=float(
            val_raw.get("excel_serial_threshold", val_defaults.excel_serial_threshold)
        ),
    )
    unit_raw = data.get("default_time_unit")
    return IngestSettings(
        timezone=data.get("timezone", defaults.timezone),
        default_time_unit=TimeUnit(unit_raw) if unit_raw else defaults.default_time_unit,
        unlabeled_experiment_label=data.get(
            "unlabeled_experiment_label", defaults.unlabeled_experiment_label
        ),
        default_experiment_label=data.get(
            "default_experiment_label", defaults.default_experiment_label
        ),
        max_row_errors=data.get("max_row_errors", defaults.max_row_errors),
        validation=validation,
    )


def load_config(path: Path) -> IngestSettings:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping, got {type(data).__name__}")

    _validate_config_schema(data)
    settings = settings_from_dict(data)
    try:
        check_timezone(settings.timezone)
    except ValueError as e:
        raise ConfigError(f"config validation failed: {e}") from e
    return settings
