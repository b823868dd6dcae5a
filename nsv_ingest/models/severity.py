from __future__ import annotations

from enum import Enum

"""Severity and distress type enums for NSV survey evaluation.

SeverityLevel is totally ordered (excellent < good < fair < poor < critical) so
that the worst severity of a segment can be computed with max().
"""

__all__ = [
    "DistressType",
    "SeverityLevel",
]


class DistressType(Enum):
    """Pavement distress categories measured by the survey vehicle.

    Values are the lowercase keys used in alert records and threshold profiles.
    """
    ROUGHNESS = "roughness"  # mm/km
    RUT_DEPTH = "rutdepth"  # mm
    CRACK_AREA = "crackarea"  # % area
    RAVELLING = "ravelling"  # % area


class SeverityLevel(Enum):
    """Ordered classification of a distress measurement against its threshold."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, SeverityLevel):
            return NotImplemented
        return self.rank >= other.rank


_RANK = {level: idx for idx, level in enumerate(SeverityLevel)}
