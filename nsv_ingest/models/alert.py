from __future__ import annotations

from dataclasses import dataclass

from .severity import DistressType, SeverityLevel

"""AlertCandidate model.

An alert candidate is emitted by the distress evaluator for a threshold
violation. It has no identity until the repository persists it (which also sets
the resolution status).
"""

__all__ = [
    "AlertCandidate",
]


@dataclass(frozen=True)
class AlertCandidate:
    distress_type: DistressType
    severity: SeverityLevel
    threshold_value: float  # raw-unit threshold from the active profile
    actual_value: float  # always > threshold_value
    message: str
