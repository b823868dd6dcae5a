from __future__ import annotations

from datetime import UTC, datetime

import pytest

from nsv_ingest.db.repository import InMemoryRepository, RepositoryError, highway_name
from nsv_ingest.models.alert import AlertCandidate
from nsv_ingest.models.lane_measurement import LaneId, LaneMeasurement
from nsv_ingest.models.severity import DistressType, SeverityLevel

SURVEY_DATE = datetime(2024, 3, 1, tzinfo=UTC)


def _lane(lane_id: LaneId = LaneId.L1) -> LaneMeasurement:
    return LaneMeasurement("NH148N", 247.31, 247.41, lane_id, 26.3, 76.2, roughness=2900)


CANDIDATE = AlertCandidate(
    DistressType.ROUGHNESS, SeverityLevel.CRITICAL, 2400.0, 2900.0, "roughness threshold exceeded: 2900 > 2400"
)


def test_highway_name():
    assert highway_name("NH148N") == "National Highway NH148N"


def test_find_or_create_highway_is_keyed_by_code():
    repo = InMemoryRepository()
    first = repo.find_or_create_highway("NH148N")
    again = repo.find_or_create_highway("NH148N")
    other = repo.find_or_create_highway("NH44")
    assert first[1] is True
    assert again == (first[0], False)
    assert other[1] is True and other[0] != first[0]
    assert [h.name for h in repo.highways] == ["National Highway NH148N", "National Highway NH44"]


def test_segment_lanes_alerts_chain():
    repo = InMemoryRepository()
    hw_id, _ = repo.find_or_create_highway("NH148N")
    seg_id = repo.create_segment(hw_id, 247.31, 247.41, SURVEY_DATE)
    lane_ids = repo.bulk_create_lanes(seg_id, [_lane(LaneId.L1), _lane(LaneId.R1)])
    alert_id = repo.create_alert(lane_ids[0], CANDIDATE)

    (segment,) = repo.segments
    assert segment.length == pytest.approx(0.1)
    assert segment.survey_date == SURVEY_DATE
    assert [l.measurement.lane_id for l in repo.lanes] == [LaneId.L1, LaneId.R1]
    (alert,) = repo.alerts_for_lane(lane_ids[0])
    assert alert.id == alert_id
    assert alert.is_resolved is False
    assert repo.alerts_for_lane(lane_ids[1]) == []


def test_writes_require_existing_parent():
    repo = InMemoryRepository()
    with pytest.raises(RepositoryError):
        repo.create_segment(99, 1.0, 2.0, SURVEY_DATE)
    with pytest.raises(RepositoryError):
        repo.bulk_create_lanes(99, [_lane()])
    with pytest.raises(RepositoryError):
        repo.create_alert(99, CANDIDATE)


def test_resolve_alert():
    repo = InMemoryRepository()
    hw_id, _ = repo.find_or_create_highway("NH148N")
    seg_id = repo.create_segment(hw_id, 247.31, 247.41, SURVEY_DATE)
    (lane_id,) = repo.bulk_create_lanes(seg_id, [_lane()])
    alert_id = repo.create_alert(lane_id, CANDIDATE)

    resolved = repo.resolve_alert(alert_id)
    assert resolved.is_resolved is True
    assert resolved.resolved_at is not None
    with pytest.raises(RepositoryError):
        repo.resolve_alert(12345)


def test_segment_scope_rolls_back_on_error():
    repo = InMemoryRepository()
    with repo.segment_scope():
        repo.find_or_create_highway("NH148N")

    with pytest.raises(RepositoryError, match="boom"):
        with repo.segment_scope():
            hw_id, _ = repo.find_or_create_highway("NH44")
            repo.create_segment(hw_id, 1.0, 2.0, SURVEY_DATE)
            raise ValueError("boom")

    assert [h.code for h in repo.highways] == ["NH148N"]
    assert repo.segments == []


def test_rollback_undoes_only_the_failed_scope():
    repo = InMemoryRepository()
    with repo.segment_scope():
        hw_id, _ = repo.find_or_create_highway("NH148N")
        seg_id = repo.create_segment(hw_id, 247.31, 247.41, SURVEY_DATE)
        (kept_lane,) = repo.bulk_create_lanes(seg_id, [_lane()])
        kept_alert = repo.create_alert(kept_lane, CANDIDATE)

    with pytest.raises(RepositoryError, match="constraint"):
        with repo.segment_scope():
            hw_id, created = repo.find_or_create_highway("NH148N")
            assert created is False
            seg_id = repo.create_segment(hw_id, 247.41, 247.51, SURVEY_DATE)
            lane_ids = repo.bulk_create_lanes(seg_id, [_lane(LaneId.L1), _lane(LaneId.L2)])
            repo.create_alert(lane_ids[0], CANDIDATE)
            repo.resolve_alert(kept_alert)
            raise RepositoryError("check constraint violated")

    assert [s.chainage_start for s in repo.segments] == [247.31]
    assert [l.id for l in repo.lanes] == [kept_lane]
    (alert,) = repo.alerts
    assert alert.id == kept_alert and alert.is_resolved is False

    # ids handed out inside the failed scope are reused
    with repo.segment_scope():
        next_seg = repo.create_segment(repo.highways[0].id, 247.41, 247.51, SURVEY_DATE)
    assert next_seg == kept_alert + 1


def test_committed_scopes_are_not_journaled():
    repo = InMemoryRepository()
    for i in range(3):
        with repo.segment_scope():
            hw_id, _ = repo.find_or_create_highway("NH148N")
            repo.create_segment(hw_id, float(i + 1), float(i + 2), SURVEY_DATE)
    assert repo._journal is None
    assert len(repo.segments) == 3


def test_nested_segment_scope_is_rejected():
    repo = InMemoryRepository()
    with pytest.raises(RepositoryError, match="nested"):
        with repo.segment_scope():
            with repo.segment_scope():
                pass
    assert repo._journal is None


def test_duplicate_ingest_creates_new_segments():
    repo = InMemoryRepository()
    for _ in range(2):
        hw_id, _ = repo.find_or_create_highway("NH148N")
        repo.create_segment(hw_id, 247.31, 247.41, SURVEY_DATE)
    assert len(repo.highways) == 1
    assert len(repo.segments) == 2
