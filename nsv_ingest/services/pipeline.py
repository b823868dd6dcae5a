from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..db.repository import Repository, RepositoryError
from ..evaluation.evaluator import DistressEvaluator, format_value
from ..excel.decoder import decode_rows
from ..excel.reader import read_table
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import IngestConfig
from ..models.ingest_result import IngestResult
from ..models.lane_measurement import LaneMeasurement
from .upload import validate_upload

"""Ingestion pipeline: decoded lane measurements -> persisted entities.

Flow per workbook:
    validate upload -> read table -> decode -> group by (highway, chainage range)
    -> per segment: highway, segment, lanes, alerts (own transaction)

Segments are written in batches of `batch_size` with a pacing delay between
batches to bound load on the database. A segment that fails is rolled back,
logged and counted; the remaining segments are still ingested. If the caller
aborts mid-run, segments already committed stay persisted.
"""

__all__ = [
    "EmptyResultError",
    "SegmentGroup",
    "group_segments",
    "ingest_file",
    "ingest_measurements",
    "ingest_upload",
]

logger = logging.getLogger(__name__)


class EmptyResultError(Exception):
    """The table was readable but produced no valid lane measurements."""


@dataclass
class SegmentGroup:
    highway_code: str
    chainage_start: float
    chainage_end: float
    lanes: list[LaneMeasurement] = field(default_factory=list)

    @property
    def label(self) -> str:
        return f"{self.highway_code}@{format_value(self.chainage_start)}-{format_value(self.chainage_end)}"

    @property
    def source_row(self) -> int:
        return self.lanes[0].source_row if self.lanes else -1


def group_segments(measurements: Iterable[LaneMeasurement]) -> list[SegmentGroup]:
    """Group by (highway, chainage start, chainage end) in first-appearance order."""
    groups: dict[tuple[str, float, float], SegmentGroup] = {}
    for m in measurements:
        group = groups.get(m.segment_key)
        if group is None:
            group = SegmentGroup(m.highway_code, m.chainage_start, m.chainage_end)
            groups[m.segment_key] = group
        group.lanes.append(m)
    return list(groups.values())


def _batches(items: Sequence[SegmentGroup], size: int) -> Iterable[Sequence[SegmentGroup]]:
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _persist_segment(
    group: SegmentGroup,
    repository: Repository,
    evaluator: DistressEvaluator,
    survey_date: datetime,
) -> tuple[int, int, int]:
    """Write one segment; returns (highways created, lanes, alerts)."""
    with repository.segment_scope():
        highway_id, created = repository.find_or_create_highway(group.highway_code)
        segment_id = repository.create_segment(
            highway_id, group.chainage_start, group.chainage_end, survey_date
        )
        lane_ids = repository.bulk_create_lanes(segment_id, group.lanes)
        if len(lane_ids) != len(group.lanes):
            raise RepositoryError(
                f"lane id count mismatch: {len(lane_ids)} ids for {len(group.lanes)} lanes"
            )
        alerts = 0
        for lane_id, measurement in zip(lane_ids, group.lanes):
            for candidate in evaluator.evaluate_lane(measurement):
                repository.create_alert(lane_id, candidate)
                alerts += 1
    return (1 if created else 0), len(lane_ids), alerts


def ingest_measurements(
    measurements: Sequence[LaneMeasurement],
    repository: Repository,
    evaluator: DistressEvaluator,
    *,
    survey_date: datetime | None = None,
    batch_size: int = 10,
    batch_delay_seconds: float = 0.1,
    error_log: ErrorLogBuffer | None = None,
    file_name: str = "<memory>",
    sleep: Callable[[float], None] = time.sleep,
) -> IngestResult:
    """Persist grouped segments and their alerts.

    Returns the counts of entities actually created (committed segments only).
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    started = time.perf_counter()
    survey_date = survey_date or datetime.now(UTC)
    groups = group_segments(measurements)

    highways = segments = lanes = alerts = failed = 0
    batches = list(_batches(groups, batch_size))
    for batch_index, batch in enumerate(batches):
        for group in batch:
            try:
                hw, ln, al = _persist_segment(group, repository, evaluator, survey_date)
            except RepositoryError as e:
                failed += 1
                logger.error("segment %s failed: %s", group.label, e)
                if error_log is not None:
                    error_log.append(
                        ErrorRecord.create(
                            file=file_name,
                            segment=group.label,
                            row=group.source_row,
                            error_type="SEGMENT_PERSIST_ERROR",
                            message=str(e),
                        )
                    )
                continue
            highways += hw
            segments += 1
            lanes += ln
            alerts += al
        logger.debug(
            "batch %d/%d done segments=%d failed=%d", batch_index + 1, len(batches), segments, failed
        )
        if batch_index < len(batches) - 1 and batch_delay_seconds > 0:
            sleep(batch_delay_seconds)

    return IngestResult(
        highways=highways,
        segments=segments,
        lanes=lanes,
        alerts=alerts,
        failed_segments=failed,
        elapsed_seconds=time.perf_counter() - started,
    )


def _ingest_rows(
    rows: Sequence[Sequence[object]],
    file_name: str,
    config: IngestConfig,
    repository: Repository,
    *,
    survey_date: datetime | None,
    error_log: ErrorLogBuffer | None,
    sleep: Callable[[float], None],
    started: float,
) -> IngestResult:
    outcome = decode_rows(rows, default_coordinate=config.default_coordinate)
    if outcome.is_empty:
        raise EmptyResultError(
            f"no valid data found in {file_name} "
            f"(rows={len(rows)}, skipped={outcome.stats.skipped_rows}); "
            "check the workbook layout with --inspect-data"
        )
    result = ingest_measurements(
        outcome.measurements,
        repository,
        DistressEvaluator(config.thresholds),
        survey_date=survey_date,
        batch_size=config.ingest.batch_size,
        batch_delay_seconds=config.ingest.batch_delay_seconds,
        error_log=error_log,
        file_name=file_name,
        sleep=sleep,
    )
    return IngestResult(
        highways=result.highways,
        segments=result.segments,
        lanes=result.lanes,
        alerts=result.alerts,
        failed_segments=result.failed_segments,
        skipped_rows=outcome.stats.skipped_rows,
        elapsed_seconds=time.perf_counter() - started,
    )


def ingest_file(
    path: Path,
    config: IngestConfig,
    repository: Repository,
    *,
    survey_date: datetime | None = None,
    error_log: ErrorLogBuffer | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> IngestResult:
    """Ingest one survey workbook from disk.

    Raises:
        UploadRejectedError: wrong extension or file too large (nothing read)
        TableReadError: the container cannot be read as a table
        EmptyResultError: no lane measurement survived admission
    """
    started = time.perf_counter()
    validate_upload(path.name, path.stat().st_size, config.upload)
    rows = read_table(path)
    return _ingest_rows(
        rows,
        path.name,
        config,
        repository,
        survey_date=survey_date,
        error_log=error_log,
        sleep=sleep,
        started=started,
    )


def ingest_upload(
    data: bytes,
    file_name: str,
    config: IngestConfig,
    repository: Repository,
    *,
    survey_date: datetime | None = None,
    error_log: ErrorLogBuffer | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> IngestResult:
    """Ingest a buffered upload (bytes plus its original file name)."""
    started = time.perf_counter()
    validate_upload(file_name, len(data), config.upload)
    rows = read_table(data, filename=file_name)
    return _ingest_rows(
        rows,
        file_name,
        config,
        repository,
        survey_date=survey_date,
        error_log=error_log,
        sleep=sleep,
        started=started,
    )
