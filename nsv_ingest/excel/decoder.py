from __future__ import annotations

import logging
import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..models.config_models import DEFAULT_COORDINATE, Coordinate
from ..models.ingest_result import DecodeStats
from ..models.lane_measurement import LANE_ORDER, LaneMeasurement
from .column_map import (
    CHAINAGE_END_COL,
    CHAINAGE_START_COL,
    COLUMN_MAP,
    DATA_START_MARKER,
    HEADER_SCAN_ROWS,
    HIGHWAY_CODE_COL,
    LANE_FIELDS,
    MANDATORY_COLUMNS,
)

"""Positional decoder for NSV survey rows.

Turns rows of cells into LaneMeasurement records: one input row fans out to at
most 8 lane records (L1-L4, R1-R4). The decoder is lenient: survey
vendors vary the workbook, so malformed cells read as absent and malformed rows
are skipped and counted, never raised.

Row admission:
1. rows before the first "NH" row (within the first 10 rows) are headers
2. blank highway code / chainage start / chainage end -> skipped
3. chainage not numeric, or not end > start > 0 -> skipped
Lane emission: a slot is emitted if any of lat/lng/roughness/rut/crack/ravelling
is present. Missing coordinates take the configured fallback.
"""

__all__ = [
    "DecodeOutcome",
    "decode_rows",
    "find_data_start",
    "iter_lane_measurements",
    "parse_number",
]

logger = logging.getLogger(__name__)


def _is_blank(cell: Any) -> bool:
    if cell is None:
        return True
    if isinstance(cell, float) and math.isnan(cell):
        return True
    if isinstance(cell, str) and cell.strip() == "":
        return True
    return False


def parse_number(cell: Any) -> float | None:
    """Lenient numeric parse. Anything not a finite number is absent (None).

    Zero is a present value.
    """
    if cell is None or isinstance(cell, bool):
        return None
    if isinstance(cell, (int, float)):
        value = float(cell)
    elif isinstance(cell, str):
        text = cell.strip().replace(",", "")
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    else:
        try:
            value = float(cell)
        except (TypeError, ValueError):
            return None
    if not math.isfinite(value):
        return None
    return value


def _cell_at(row: Sequence[Any], index: int) -> Any:
    # Short rows: out-of-range cells are absent
    if index < len(row):
        return row[index]
    return None


def find_data_start(rows: Sequence[Sequence[Any]], scan_limit: int = HEADER_SCAN_ROWS) -> int:
    """Index of the first data row.

    The first row within the first `scan_limit` rows whose first cell is a
    string containing "NH". Defaults to 0 when none is found.
    """
    for idx, row in enumerate(rows[:scan_limit]):
        if not row:
            continue
        first = row[0]
        if isinstance(first, str) and DATA_START_MARKER in first:
            return idx
    return 0


@dataclass
class DecodeOutcome:
    """Decoded lane measurements plus the skip counters of the pass."""
    measurements: list[LaneMeasurement] = field(default_factory=list)
    stats: DecodeStats = field(default_factory=DecodeStats)

    @property
    def is_empty(self) -> bool:
        return not self.measurements


def iter_lane_measurements(
    rows: Sequence[Sequence[Any]],
    *,
    default_coordinate: Coordinate = DEFAULT_COORDINATE,
    scan_limit: int = HEADER_SCAN_ROWS,
    stats: DecodeStats | None = None,
) -> Iterator[LaneMeasurement]:
    """Lazily decode rows into lane measurements (single pass).

    When `stats` is given it is updated in place as rows are consumed.
    """
    if stats is None:
        stats = DecodeStats()
    start = find_data_start(rows, scan_limit)
    stats.data_start_row = start
    logger.debug("data starts at row %d of %d", start, len(rows))

    for row_index in range(start, len(rows)):
        row = rows[row_index] or []
        stats.scanned_rows += 1

        if any(_is_blank(_cell_at(row, col)) for col in MANDATORY_COLUMNS):
            stats.skipped_missing_fields += 1
            continue

        highway_code = str(_cell_at(row, HIGHWAY_CODE_COL)).strip()
        chainage_start = parse_number(_cell_at(row, CHAINAGE_START_COL))
        chainage_end = parse_number(_cell_at(row, CHAINAGE_END_COL))
        if (
            chainage_start is None
            or chainage_end is None
            or not (chainage_end > chainage_start > 0)
        ):
            stats.skipped_invalid_chainage += 1
            logger.debug(
                "row %d skipped: invalid chainage %r -> %r",
                row_index,
                _cell_at(row, CHAINAGE_START_COL),
                _cell_at(row, CHAINAGE_END_COL),
            )
            continue

        stats.admitted_rows += 1
        for lane_id in LANE_ORDER:
            offsets = COLUMN_MAP[lane_id].offsets()
            values = {name: parse_number(_cell_at(row, offsets[name])) for name in LANE_FIELDS}
            if all(v is None for v in values.values()):
                stats.dropped_empty_lanes += 1
                continue
            latitude = values.pop("latitude")
            longitude = values.pop("longitude")
            stats.emitted_lanes += 1
            yield LaneMeasurement(
                highway_code=highway_code,
                chainage_start=chainage_start,
                chainage_end=chainage_end,
                lane_id=lane_id,
                latitude=latitude if latitude is not None else default_coordinate.latitude,
                longitude=longitude if longitude is not None else default_coordinate.longitude,
                source_row=row_index,
                **values,
            )


def decode_rows(
    rows: Sequence[Sequence[Any]],
    *,
    default_coordinate: Coordinate = DEFAULT_COORDINATE,
    scan_limit: int = HEADER_SCAN_ROWS,
) -> DecodeOutcome:
    """Decode a full table into lane measurements.

    Never raises for malformed cells or rows; an empty outcome is a valid
    result (the caller decides whether "no valid data" is a failure).
    """
    outcome = DecodeOutcome()
    outcome.measurements.extend(
        iter_lane_measurements(
            rows,
            default_coordinate=default_coordinate,
            scan_limit=scan_limit,
            stats=outcome.stats,
        )
    )
    stats = outcome.stats
    if stats.skipped_missing_fields:
        logger.warning("%d rows skipped: missing mandatory fields", stats.skipped_missing_fields)
    if stats.skipped_invalid_chainage:
        logger.warning("%d rows skipped: invalid chainage", stats.skipped_invalid_chainage)
    logger.info(
        "decoded %d lane records from %d rows (start_row=%d, admitted=%d, empty_lanes=%d)",
        stats.emitted_lanes,
        stats.scanned_rows,
        stats.data_start_row,
        stats.admitted_rows,
        stats.dropped_empty_lanes,
    )
    return outcome
