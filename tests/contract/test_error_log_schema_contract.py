from __future__ import annotations

import json
import re
from pathlib import Path

from nsv_ingest.db.repository import InMemoryRepository, RepositoryError
from nsv_ingest.config.loader import load_config
from nsv_ingest.logging.error_log import ErrorLogBuffer
from nsv_ingest.services.orchestrator import process_all

EXPECTED_KEYS = ["timestamp", "file", "segment", "row", "error_type", "message"]
TS_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$")
SEGMENT_RE = re.compile(r"^(<FILE_LEVEL>|.+@[\d.]+-[\d.]+)$")


class RejectingRepository(InMemoryRepository):
    def create_alert(self, lane_id, candidate):
        raise RepositoryError("alerts table is read-only")


def test_error_log_lines_follow_schema(write_config: Path, temp_workdir: Path, write_workbook, sample_survey_rows):
    write_workbook("a_survey.xlsx", sample_survey_rows)
    (temp_workdir / "data" / "b_broken.xlsx").write_bytes(b"nope")
    error_log = ErrorLogBuffer(temp_workdir / "logs")

    result = process_all(load_config(write_config), RejectingRepository(), error_log=error_log)

    # only the first segment raises alerts, so only it fails
    assert result.totals.failed_segments == 1
    assert result.totals.segments == 1

    (log_file,) = list((temp_workdir / "logs").glob("errors-*.log"))
    records = [json.loads(l) for l in log_file.read_text(encoding="utf-8").splitlines()]
    assert len(records) == 2
    for rec in records:
        assert list(rec) == EXPECTED_KEYS
        assert TS_RE.match(rec["timestamp"])
        assert SEGMENT_RE.match(rec["segment"])
        assert isinstance(rec["row"], int)
        assert re.match(r"^[A-Z_]+$", rec["error_type"])

    segment_error, file_error = records
    assert segment_error["error_type"] == "SEGMENT_PERSIST_ERROR"
    assert segment_error["segment"] == "NH148N@247.31-247.41"
    assert segment_error["row"] == 2
    assert file_error["row"] == -1
