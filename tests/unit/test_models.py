from __future__ import annotations

import json

import pytest

from nsv_ingest.models.config_models import ThresholdProfile
from nsv_ingest.models.error_record import ErrorRecord
from nsv_ingest.models.ingest_result import IngestResult
from nsv_ingest.models.lane_measurement import LANE_ORDER, LaneId, LaneMeasurement
from nsv_ingest.models.severity import DistressType, SeverityLevel


def _lane(**overrides) -> LaneMeasurement:
    fields = dict(
        highway_code="NH148N",
        chainage_start=247.31,
        chainage_end=247.41,
        lane_id=LaneId.L1,
        latitude=26.3,
        longitude=76.2,
    )
    fields.update(overrides)
    return LaneMeasurement(**fields)


def test_lane_order_is_left_then_right():
    assert [l.value for l in LANE_ORDER] == ["L1", "L2", "L3", "L4", "R1", "R2", "R3", "R4"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"highway_code": ""},
        {"highway_code": "   "},
        {"chainage_start": 0.0},
        {"chainage_start": 5.0, "chainage_end": 5.0},
        {"chainage_start": 6.0, "chainage_end": 5.0},
    ],
)
def test_lane_measurement_rejects_invalid_identity(overrides):
    with pytest.raises(ValueError):
        _lane(**overrides)


def test_lane_measurement_keeps_absent_distinct_from_zero():
    lane = _lane(roughness=0.0)
    assert dict(lane.measurements()) == {
        DistressType.ROUGHNESS: 0.0,
        DistressType.RUT_DEPTH: None,
        DistressType.CRACK_AREA: None,
        DistressType.RAVELLING: None,
    }
    assert lane.segment_key == ("NH148N", 247.31, 247.41)


def test_severity_total_order():
    ordered = [
        SeverityLevel.EXCELLENT,
        SeverityLevel.GOOD,
        SeverityLevel.FAIR,
        SeverityLevel.POOR,
        SeverityLevel.CRITICAL,
    ]
    assert sorted(reversed(ordered)) == ordered
    assert SeverityLevel.POOR > SeverityLevel.FAIR
    assert max(ordered) is SeverityLevel.CRITICAL


def test_threshold_profile_lookup():
    profile = ThresholdProfile()
    assert profile.for_type(DistressType.ROUGHNESS) == 2400.0
    assert profile.for_type("rutdepth") == 5.0
    assert profile.for_type("unknown") is None


def test_ingest_result_addition():
    total = IngestResult(highways=1, segments=2, lanes=5, alerts=1) + IngestResult(
        segments=1, lanes=2, failed_segments=1, skipped_rows=3
    )
    assert total.as_counts() == {"highways": 1, "segments": 3, "lanes": 7, "alerts": 1}
    assert total.failed_segments == 1
    assert total.skipped_rows == 3


def test_error_record_json_line_has_fixed_keys():
    record = ErrorRecord.create(
        file="survey.xlsx",
        segment="NH148N@247.31-247.41",
        row=4,
        error_type="SEGMENT_PERSIST_ERROR",
        message="duplicate key",
    )
    data = json.loads(record.to_json_line())
    assert list(data) == ["timestamp", "file", "segment", "row", "error_type", "message"]
    assert data["timestamp"].endswith("Z")
    assert data["row"] == 4
