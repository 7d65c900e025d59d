from __future__ import annotations
import pytest
from pathlib import Path
from kinetic_import.config.loader import load_config, settings_from_dict, ConfigError
from kinetic_import.models.config_models import IngestSettings
from kinetic_import.models.time_axis import TimeUnit


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.timezone == "Europe/Berlin"
    assert cfg.default_time_unit is TimeUnit.MINUTES
    assert cfg.max_row_errors == 3
    assert cfg.validation.min_points == 4
    assert cfg.validation.constant_signal_tolerance == 0.001
    assert cfg.validation.excel_serial_threshold == 20000.0


def test_load_config_missing_file(temp_workdir: Path):
    missing = temp_workdir / "config" / "not_exists.yml"
    with pytest.raises(ConfigError):
        load_config(missing)


def test_load_config_empty_file_gives_defaults(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "empty.yml"
    cfg_path.write_text("", encoding="utf-8")
    assert load_config(cfg_path) == IngestSettings()


def test_load_config_partial_validation_block(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "partial.yml"
    cfg_path.write_text("validation:\n  min_points: 8\n", encoding="utf-8")
    cfg = load_config(cfg_path)
    assert cfg.validation.min_points == 8
    assert cfg.validation.constant_signal_tolerance == 1e-6
    assert cfg.timezone == "UTC"


def test_load_config_invalid_yaml(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "broken.yml"
    cfg_path.write_text("timezone: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(cfg_path)
    assert "invalid yaml" in str(e.value)


def test_load_config_root_must_be_mapping(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "list.yml"
    cfg_path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(cfg_path)
    assert "mapping" in str(e.value)


def test_load_config_unknown_time_unit(write_config: Path):
    text = write_config.read_text(encoding="utf-8").replace(
        "default_time_unit: minutes", "default_time_unit: fortnights"
    )
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_load_config_extra_field(write_config: Path):
    # additionalProperties: false で未知キーは拒否
    text = write_config.read_text(encoding="utf-8") + "\nextra_field: not_allowed\n"
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)


def test_settings_from_dict_defaults():
    assert settings_from_dict({}) == IngestSettings()
    assert settings_from_dict({"default_time_unit": "hours"}).default_time_unit is TimeUnit.HOURS


def test_load_config_unknown_timezone(temp_workdir: Path):
    cfg_path = temp_workdir / "config" / "tz.yml"
    cfg_path.write_text("timezone: Mars/Base\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(cfg_path)
    assert "unknown timezone 'Mars/Base'" in str(e.value)
