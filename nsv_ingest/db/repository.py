from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any, Protocol

from ..models.alert import AlertCandidate
from ..models.lane_measurement import LaneMeasurement

"""Persistence repository contract and an in-memory implementation.

The ingestion pipeline only talks to this interface. PostgresRepository
(db/postgres.py) implements it against the highways/segments/lanes/alerts
tables; InMemoryRepository backs mock mode (no DB) and tests.
"""

__all__ = [
    "AlertRecord",
    "HighwayRecord",
    "InMemoryRepository",
    "LaneRecord",
    "Repository",
    "RepositoryError",
    "SegmentRecord",
    "highway_name",
]


class RepositoryError(Exception):
    """Raised when a write cannot be persisted (constraint violation, driver error)."""


def highway_name(code: str) -> str:
    return f"National Highway {code}"


class Repository(Protocol):
    def find_or_create_highway(self, code: str) -> tuple[int, bool]:
        """Return (highway_id, created)."""
        ...

    def create_segment(
        self, highway_id: int, chainage_start: float, chainage_end: float, survey_date: datetime
    ) -> int:
        ...

    def bulk_create_lanes(self, segment_id: int, measurements: Sequence[LaneMeasurement]) -> list[int]:
        """Create lanes, returning ids in input order."""
        ...

    def create_alert(self, lane_id: int, candidate: AlertCandidate) -> int:
        ...

    def segment_scope(self) -> AbstractContextManager[None]:
        """Commit on success, roll back the segment's writes on error."""
        ...


@dataclass(frozen=True)
class HighwayRecord:
    id: int
    code: str
    name: str


@dataclass(frozen=True)
class SegmentRecord:
    id: int
    highway_id: int
    chainage_start: float
    chainage_end: float
    length: float
    survey_date: datetime


@dataclass(frozen=True)
class LaneRecord:
    id: int
    segment_id: int
    measurement: LaneMeasurement


@dataclass(frozen=True)
class AlertRecord:
    id: int
    lane_id: int
    candidate: AlertCandidate
    is_resolved: bool = False
    resolved_at: datetime | None = None


@dataclass
class _State:
    highways: dict[int, HighwayRecord] = field(default_factory=dict)
    segments: dict[int, SegmentRecord] = field(default_factory=dict)
    lanes: dict[int, LaneRecord] = field(default_factory=dict)
    alerts: dict[int, AlertRecord] = field(default_factory=dict)
    next_id: int = 1


class InMemoryRepository:
    """Dict-backed repository.

    Writes made inside a segment scope are journaled as (table, id, previous
    record) and undone in reverse order on error, so a rollback costs only
    what the segment wrote.
    """

    def __init__(self) -> None:
        self._state = _State()
        self._journal: list[tuple[dict[int, Any], int, Any]] | None = None

    # -- read helpers -------------------------------------------------------
    @property
    def highways(self) -> list[HighwayRecord]:
        return list(self._state.highways.values())

    @property
    def segments(self) -> list[SegmentRecord]:
        return list(self._state.segments.values())

    @property
    def lanes(self) -> list[LaneRecord]:
        return list(self._state.lanes.values())

    @property
    def alerts(self) -> list[AlertRecord]:
        return list(self._state.alerts.values())

    def alerts_for_lane(self, lane_id: int) -> list[AlertRecord]:
        return [a for a in self._state.alerts.values() if a.lane_id == lane_id]

    # -- writes -------------------------------------------------------------
    def _next_id(self) -> int:
        value = self._state.next_id
        self._state.next_id += 1
        return value

    def _put(self, table: dict[int, Any], record: Any) -> None:
        if self._journal is not None:
            self._journal.append((table, record.id, table.get(record.id)))
        table[record.id] = record

    def find_or_create_highway(self, code: str) -> tuple[int, bool]:
        for hw in self._state.highways.values():
            if hw.code == code:
                return hw.id, False
        hw = HighwayRecord(id=self._next_id(), code=code, name=highway_name(code))
        self._put(self._state.highways, hw)
        return hw.id, True

    def create_segment(
        self, highway_id: int, chainage_start: float, chainage_end: float, survey_date: datetime
    ) -> int:
        if highway_id not in self._state.highways:
            raise RepositoryError(f"highway {highway_id} does not exist")
        seg = SegmentRecord(
            id=self._next_id(),
            highway_id=highway_id,
            chainage_start=chainage_start,
            chainage_end=chainage_end,
            length=chainage_end - chainage_start,
            survey_date=survey_date,
        )
        self._put(self._state.segments, seg)
        return seg.id

    def bulk_create_lanes(self, segment_id: int, measurements: Sequence[LaneMeasurement]) -> list[int]:
        if segment_id not in self._state.segments:
            raise RepositoryError(f"segment {segment_id} does not exist")
        ids = []
        for m in measurements:
            lane = LaneRecord(id=self._next_id(), segment_id=segment_id, measurement=m)
            self._put(self._state.lanes, lane)
            ids.append(lane.id)
        return ids

    def create_alert(self, lane_id: int, candidate: AlertCandidate) -> int:
        if lane_id not in self._state.lanes:
            raise RepositoryError(f"lane {lane_id} does not exist")
        alert = AlertRecord(id=self._next_id(), lane_id=lane_id, candidate=candidate)
        self._put(self._state.alerts, alert)
        return alert.id

    def resolve_alert(self, alert_id: int) -> AlertRecord:
        alert = self._state.alerts.get(alert_id)
        if alert is None:
            raise RepositoryError(f"alert {alert_id} does not exist")
        resolved = replace(alert, is_resolved=True, resolved_at=datetime.now(UTC))
        self._put(self._state.alerts, resolved)
        return resolved

    @contextmanager
    def segment_scope(self) -> Iterator[None]:
        if self._journal is not None:
            raise RepositoryError("segment scopes cannot be nested")
        journal: list[tuple[dict[int, Any], int, Any]] = []
        next_id = self._state.next_id
        self._journal = journal
        try:
            yield
        except Exception as e:
            for table, record_id, previous in reversed(journal):
                if previous is None:
                    table.pop(record_id, None)
                else:
                    table[record_id] = previous
            self._state.next_id = next_id
            if isinstance(e, RepositoryError):
                raise
            raise RepositoryError(str(e)) from e
        finally:
            self._journal = None
