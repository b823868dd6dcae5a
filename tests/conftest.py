# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from nsv_ingest.excel.column_map import COLUMN_MAP, max_indexed_column
from nsv_ingest.logging.init import reset_logging
from nsv_ingest.models.lane_measurement import LaneId

ROW_WIDTH = max_indexed_column() + 1

HEADER_ROWS: list[list[Any]] = [
    ["NH Number", "Start Chainage", "End Chainage", "Length", "Structure Details", "Lane L1"],
    [None, None, None, None, None, "Start", None, "End"],
]


def build_survey_row(
    highway: Any = "NH148N",
    start: Any = 247.31,
    end: Any = 247.41,
    lanes: Mapping[LaneId, Mapping[str, Any]] | None = None,
) -> list[Any]:
    """One data row; `lanes` maps a lane slot to {field name: cell value}."""
    row: list[Any] = [None] * ROW_WIDTH
    row[0:3] = [highway, start, end]
    for lane_id, values in (lanes or {}).items():
        offsets = COLUMN_MAP[lane_id].offsets()
        for name, value in values.items():
            row[offsets[name]] = value
    return row


@pytest.fixture(autouse=True)
def clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("PGDSN", raising=False)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
thresholds:
  roughness: 2400
  rutdepth: 5
  crackarea: 5
  ravelling: 1
default_coordinate:
  latitude: 28.7041
  longitude: 77.1025
upload:
  max_bytes: 10485760
  allowed_extensions: [".xlsx", ".xls"]
ingest:
  batch_size: 10
  batch_delay_seconds: 0
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: nsv
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "nsv_ingest.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def survey_row() -> Callable[..., list[Any]]:
    return build_survey_row


@pytest.fixture()
def write_workbook(temp_workdir: Path) -> Callable[..., Path]:
    """Write rows as the first sheet of an .xlsx (no header row, no index)."""

    def _write(name: str, rows: list[list[Any]], directory: Path | None = None) -> Path:
        target = (directory or temp_workdir / "data") / name
        with pd.ExcelWriter(target, engine="openpyxl") as writer:
            pd.DataFrame(rows).to_excel(writer, sheet_name="NSV Data", header=False, index=False)
        return target

    return _write


@pytest.fixture()
def sample_survey_rows(survey_row) -> list[list[Any]]:
    """Two header rows plus two segments of NH148N (L1/L2 and L1 only)."""
    return HEADER_ROWS + [
        survey_row(
            lanes={
                LaneId.L1: {"latitude": 26.36114, "longitude": 76.25048, "roughness": 2900, "rut_depth": 3.2},
                LaneId.L2: {"latitude": 26.36120, "longitude": 76.25052, "crack_area": 6.5},
            }
        ),
        survey_row(start=247.41, end=247.51, lanes={LaneId.L1: {"roughness": 1800, "ravelling": 0}}),
    ]
