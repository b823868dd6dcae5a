from __future__ import annotations

import importlib.util
import time
from pathlib import Path

from nsv_ingest.config.loader import load_config
from nsv_ingest.db.repository import InMemoryRepository
from nsv_ingest.services.pipeline import ingest_file

"""Throughput smoke test over a generated survey workbook (lenient budget)."""

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "gen_sample_survey.py"


def _load_generator():
    spec = importlib.util.spec_from_file_location("gen_sample_survey", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_generated_workbook_ingests_without_ghost_lanes(write_config: Path, temp_workdir: Path):
    gen = _load_generator()
    rows = gen.generate_survey_rows(300, lanes=5, seed=7)
    path = gen.write_survey_workbook(temp_workdir / "data" / "generated.xlsx", rows)
    repo = InMemoryRepository()

    start = time.perf_counter()
    result = ingest_file(path, load_config(write_config), repo)
    elapsed = time.perf_counter() - start

    assert result.segments == 300
    assert result.lanes == 300 * 5
    assert {l.measurement.lane_id.value for l in repo.lanes} == {"L1", "L2", "R1", "R2", "R3"}
    assert result.alerts == len(repo.alerts)
    assert elapsed < 30, f"ingest too slow: {elapsed:.2f}s"


def test_generator_cli_rejects_non_xlsx(temp_workdir: Path, capsys):
    gen = _load_generator()
    assert gen.main([str(temp_workdir / "out.csv")]) == 1
    assert gen.main([str(temp_workdir / "out.xlsx"), "--segments", "3", "--lanes", "2"]) == 0
    assert (temp_workdir / "out.xlsx").exists()
