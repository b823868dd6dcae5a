from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from .severity import DistressType

"""LaneMeasurement model: one decoded (row x lane slot) record.

Produced by the spreadsheet decoder and consumed by segment grouping and the
distress evaluator. Immutable; never persisted directly (the repository projects
it into lane rows).
"""

__all__ = [
    "LaneId",
    "LANE_ORDER",
    "LaneMeasurement",
]


class LaneId(Enum):
    """Physical lane slots. L1-L4 left carriageway, R1-R4 right carriageway."""
    L1 = "L1"
    L2 = "L2"
    L3 = "L3"
    L4 = "L4"
    R1 = "R1"
    R2 = "R2"
    R3 = "R3"
    R4 = "R4"


# Fan-out order; slot index i drives every column offset.
LANE_ORDER: tuple[LaneId, ...] = tuple(LaneId)


@dataclass(frozen=True)
class LaneMeasurement:
    """Distress measurements for one lane slot of one surveyed segment.

    Distress values are None when not measured (distinct from 0.0).
    """
    highway_code: str  # e.g. "NH-148N"
    chainage_start: float  # km
    chainage_end: float  # km
    lane_id: LaneId
    latitude: float
    longitude: float
    roughness: float | None = None  # mm/km
    rut_depth: float | None = None  # mm
    crack_area: float | None = None  # % area
    ravelling: float | None = None  # % area
    source_row: int = -1  # 0-based table row; -1 if unknown

    def __post_init__(self) -> None:
        if not self.highway_code or not self.highway_code.strip():
            raise ValueError("highway_code must be non-empty")
        if not (self.chainage_end > self.chainage_start > 0):
            raise ValueError(
                f"invalid chainage range {self.chainage_start} -> {self.chainage_end} "
                "(expected end > start > 0)"
            )

    @property
    def segment_key(self) -> tuple[str, float, float]:
        return (self.highway_code, self.chainage_start, self.chainage_end)

    def measurements(self) -> Iterator[tuple[DistressType, float | None]]:
        """Yield (distress type, value) in the fixed evaluation order."""
        yield DistressType.ROUGHNESS, self.roughness
        yield DistressType.RUT_DEPTH, self.rut_depth
        yield DistressType.CRACK_AREA, self.crack_area
        yield DistressType.RAVELLING, self.ravelling
