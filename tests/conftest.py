# Shared pytest fixtures
from __future__ import annotations
import io
import tempfile
from pathlib import Path

import pandas as pd  # type: ignore
import pytest

from kinetic_import.logging.init import reset_logging
from kinetic_import.models.dataset import Dataset, Experiment, Series, SeriesMeta


@pytest.fixture(autouse=True)
def _fresh_logging():
    # 各テストで stdout ハンドラを張り直す (capsys の差し替えに追従させる)
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """timezone: Europe/Berlin
default_time_unit: minutes
unlabeled_experiment_label: Unlabeled experiment
default_experiment_label: Experiment 1
max_row_errors: 3
validation:
  min_points: 4
  constant_signal_tolerance: 0.001
  excel_serial_threshold: 20000
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


def make_xlsx_bytes(sheets: dict[str, list[list[object]]]) -> bytes:
    """Build a real workbook in memory; every sheet is written headerless."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            df = pd.DataFrame(rows)
            df.to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return buffer.getvalue()


@pytest.fixture()
def xlsx_factory():
    return make_xlsx_bytes


def make_series(
    time: list[float],
    y: list[float],
    dropped: int = 0,
    name: str = "signal",
    series_id: str = "series-1",
) -> Series:
    return Series(
        id=series_id,
        name=name,
        time=list(time),
        y=list(y),
        meta=SeriesMeta(dropped_points=dropped, value_column=name),
    )


def make_dataset(*experiments: Experiment) -> Dataset:
    return Dataset(
        id="dataset-test",
        name="test.csv",
        created_at="2025-01-01T00:00:00Z",
        experiments=list(experiments),
    )


def make_experiment(name: str, *series: Series, exp_id: str | None = None, **meta) -> Experiment:
    return Experiment(
        id=exp_id or f"exp-{name}",
        name=name,
        series=list(series),
        meta_raw=dict(meta),
    )


@pytest.fixture()
def series_factory():
    return make_series


@pytest.fixture()
def experiment_factory():
    return make_experiment


@pytest.fixture()
def dataset_factory():
    return make_dataset
