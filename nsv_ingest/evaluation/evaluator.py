from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

from ..models.alert import AlertCandidate
from ..models.config_models import ThresholdProfile
from ..models.lane_measurement import LaneMeasurement
from ..models.severity import DistressType, SeverityLevel

"""Distress evaluator: severity classification and alert emission.

Classification uses ratio = value / threshold:
    ratio >= 1.2 -> critical
    ratio >= 1.0 -> poor
    ratio >= 0.8 -> fair
    ratio >= 0.6 -> good
    otherwise    -> excellent
Unknown distress types classify as good.

An alert is emitted only when value > threshold (strict, raw values). A value
exactly at the threshold classifies as poor but emits no alert.
"""

__all__ = [
    "DistressEvaluator",
    "format_value",
    "segment_worst_severity",
    "worst_severity",
]

# (lower ratio bound, severity), checked top-down
_SEVERITY_BANDS: tuple[tuple[float, SeverityLevel], ...] = (
    (1.2, SeverityLevel.CRITICAL),
    (1.0, SeverityLevel.POOR),
    (0.8, SeverityLevel.FAIR),
    (0.6, SeverityLevel.GOOD),
)


def format_value(value: float) -> str:
    """Render a number for alert messages (2900.0 -> "2900", 5.5 -> "5.5")."""
    if not math.isfinite(value):
        return repr(float(value))
    if value == int(value):
        return str(int(value))
    return repr(float(value))


def _coerce_type(distress_type: DistressType | str) -> DistressType | None:
    if isinstance(distress_type, DistressType):
        return distress_type
    try:
        return DistressType(distress_type)
    except ValueError:
        return None


class DistressEvaluator:
    """Stateless evaluator bound to one threshold profile.

    Calling classify/evaluate twice with the same input gives identical results.
    """

    def __init__(self, thresholds: ThresholdProfile | None = None) -> None:
        self.thresholds = thresholds if thresholds is not None else ThresholdProfile()

    def classify(self, distress_type: DistressType | str, value: float) -> SeverityLevel:
        dtype = _coerce_type(distress_type)
        threshold = self.thresholds.for_type(dtype) if dtype is not None else None
        if not threshold:
            return SeverityLevel.GOOD
        ratio = value / threshold
        for bound, severity in _SEVERITY_BANDS:
            if ratio >= bound:
                return severity
        return SeverityLevel.EXCELLENT

    def evaluate(self, distress_type: DistressType | str, value: float | None) -> AlertCandidate | None:
        """Alert candidate for a violated threshold, else None."""
        if value is None:
            return None
        dtype = _coerce_type(distress_type)
        if dtype is None:
            return None
        threshold = self.thresholds.for_type(dtype)
        if threshold is None or not value > threshold:
            return None
        return AlertCandidate(
            distress_type=dtype,
            severity=self.classify(dtype, value),
            threshold_value=threshold,
            actual_value=value,
            message=(
                f"{dtype.value} threshold exceeded: "
                f"{format_value(value)} > {format_value(threshold)}"
            ),
        )

    def evaluate_lane(self, measurement: LaneMeasurement) -> list[AlertCandidate]:
        """One candidate per violated distress type, in evaluation order."""
        alerts = []
        for dtype, value in measurement.measurements():
            alert = self.evaluate(dtype, value)
            if alert is not None:
                alerts.append(alert)
        return alerts


def worst_severity(severities: Iterable[SeverityLevel]) -> SeverityLevel:
    """Maximum severity, excellent when there is nothing to aggregate."""
    return max(severities, default=SeverityLevel.EXCELLENT)


def segment_worst_severity(alerts_by_lane: Mapping[Any, Iterable[AlertCandidate]]) -> SeverityLevel:
    """Worst severity across all lane alerts of a segment."""
    return worst_severity(
        alert.severity for alerts in alerts_by_lane.values() for alert in alerts
    )
