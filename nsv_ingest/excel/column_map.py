from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from collections.abc import Mapping

from ..models.lane_measurement import LANE_ORDER, LaneId

"""Declarative column layout of the NSV survey workbook.

Every positional offset the decoder reads lives here. A vendor format change
should only touch this table. The --inspect-data legend is rendered from it.

Layout (0-based columns, lane slot index i = 0..7 in LANE_ORDER):
    0                highway code (e.g. "NH148N")
    1, 2             chainage start / end
    5 + 4*i, +1      lane start latitude / longitude (end pair at +2, +3 unused)
    31 + i           roughness BI (mm/km)
    40 + i           rut depth (mm)
    49 + i           crack area (% area)
    58 + i           ravelling (% area)
The GPS span (5-36) overlaps the roughness block: the R3 end pair sits on the
L1/L2 roughness cells and the R4 start pair (33, 34) on the L3/L4 roughness
cells, so a row carrying L3 or L4 roughness also yields an R4 lane.
"""

__all__ = [
    "HIGHWAY_CODE_COL",
    "CHAINAGE_START_COL",
    "CHAINAGE_END_COL",
    "MANDATORY_COLUMNS",
    "LANE_FIELDS",
    "LaneColumns",
    "COLUMN_MAP",
    "HEADER_SCAN_ROWS",
    "DATA_START_MARKER",
    "column_legend",
    "max_indexed_column",
]

HIGHWAY_CODE_COL = 0
CHAINAGE_START_COL = 1
CHAINAGE_END_COL = 2
MANDATORY_COLUMNS = (HIGHWAY_CODE_COL, CHAINAGE_START_COL, CHAINAGE_END_COL)

# Header detection window and marker
HEADER_SCAN_ROWS = 10
DATA_START_MARKER = "NH"

# field -> (base offset, stride per lane slot)
_FIELD_OFFSETS: dict[str, tuple[int, int]] = {
    "latitude": (5, 4),
    "longitude": (6, 4),
    "roughness": (31, 1),
    "rut_depth": (40, 1),
    "crack_area": (49, 1),
    "ravelling": (58, 1),
}

LANE_FIELDS: tuple[str, ...] = tuple(_FIELD_OFFSETS)

_FIELD_LABELS = {
    "latitude": "GPS latitude",
    "longitude": "GPS longitude",
    "roughness": "Roughness BI (mm/km)",
    "rut_depth": "Rut depth (mm)",
    "crack_area": "Crack area (% area)",
    "ravelling": "Ravelling (% area)",
}


@dataclass(frozen=True)
class LaneColumns:
    """Column offsets of one lane slot."""
    lane_id: LaneId
    latitude: int
    longitude: int
    roughness: int
    rut_depth: int
    crack_area: int
    ravelling: int

    def offsets(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in LANE_FIELDS}


def _build_column_map() -> Mapping[LaneId, LaneColumns]:
    lanes: dict[LaneId, LaneColumns] = {}
    for idx, lane_id in enumerate(LANE_ORDER):
        offsets = {name: base + stride * idx for name, (base, stride) in _FIELD_OFFSETS.items()}
        lanes[lane_id] = LaneColumns(lane_id=lane_id, **offsets)
    return MappingProxyType(lanes)


COLUMN_MAP: Mapping[LaneId, LaneColumns] = _build_column_map()


def max_indexed_column() -> int:
    return max(max(cols.offsets().values()) for cols in COLUMN_MAP.values())


def _span(field_name: str) -> str:
    cols = [COLUMN_MAP[lane].offsets()[field_name] for lane in LANE_ORDER]
    return f"Columns {min(cols)}-{max(cols)}"


def column_legend() -> dict[str, str]:
    """Static column mapping legend for debug output."""
    legend = {
        "highway_code": f"Column {HIGHWAY_CODE_COL}",
        "chainage_start": f"Column {CHAINAGE_START_COL}",
        "chainage_end": f"Column {CHAINAGE_END_COL}",
        "gps_coords": f"Columns {COLUMN_MAP[LANE_ORDER[0]].latitude}-"
        f"{COLUMN_MAP[LANE_ORDER[-1]].latitude + 3} (4 per lane, start lat/lng used)",
    }
    for name in ("roughness", "rut_depth", "crack_area", "ravelling"):
        legend[name] = f"{_span(name)} ({_FIELD_LABELS[name]}, {'/'.join(l.value for l in LANE_ORDER)})"
    return legend
