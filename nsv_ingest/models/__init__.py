"""Domain models for the NSV survey ingestion tool.

This package contains the data contracts shared by the decoder, the distress
evaluator, the repository layer and the ingestion services.
"""

from .alert import AlertCandidate
from .config_models import (
    Coordinate,
    DatabaseConfig,
    IngestConfig,
    IngestSettings,
    ThresholdProfile,
    UploadLimits,
)
from .ingest_result import DecodeStats, FileStat, IngestResult, ProcessingResult
from .lane_measurement import LANE_ORDER, LaneId, LaneMeasurement
from .severity import DistressType, SeverityLevel

__all__ = [
    # Configuration models
    "Coordinate",
    "DatabaseConfig",
    "IngestConfig",
    "IngestSettings",
    "ThresholdProfile",
    "UploadLimits",
    # Survey data contracts
    "AlertCandidate",
    "DistressType",
    "LANE_ORDER",
    "LaneId",
    "LaneMeasurement",
    "SeverityLevel",
    # Results
    "DecodeStats",
    "FileStat",
    "IngestResult",
    "ProcessingResult",
]
