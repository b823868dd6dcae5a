from .evaluator import DistressEvaluator, format_value, segment_worst_severity, worst_severity

__all__ = [
    "DistressEvaluator",
    "format_value",
    "segment_worst_severity",
    "worst_severity",
]
