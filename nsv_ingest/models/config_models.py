from __future__ import annotations

from dataclasses import dataclass, field

from .severity import DistressType

"""Config dataclasses for the NSV ingestion tool.

These are the typed results of YAML loading (nsv_ingest.config.loader).
ThresholdProfile is passed explicitly to the evaluator so that several profiles
(per-contract variants) can coexist.
"""

__all__ = [
    "Coordinate",
    "DatabaseConfig",
    "IngestConfig",
    "IngestSettings",
    "ThresholdProfile",
    "UploadLimits",
    "DEFAULT_COORDINATE",
    "DEFAULT_MAX_UPLOAD_BYTES",
    "DEFAULT_ALLOWED_EXTENSIONS",
]

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_ALLOWED_EXTENSIONS = (".xlsx", ".xls")


@dataclass(frozen=True)
class ThresholdProfile:
    """Raw-unit distress thresholds.

    Defaults are the MoRT&H / concession agreement limits used by NSV surveys.
    """
    roughness: float = 2400.0  # mm/km
    rutdepth: float = 5.0  # mm
    crackarea: float = 5.0  # % area
    ravelling: float = 1.0  # % area

    def for_type(self, distress_type: DistressType | str) -> float | None:
        """Threshold for a distress type, or None when the type is unknown."""
        key = distress_type.value if isinstance(distress_type, DistressType) else distress_type
        if key not in _PROFILE_KEYS:
            return None
        return float(getattr(self, key))


_PROFILE_KEYS = frozenset(t.value for t in DistressType)


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


# Fallback for lanes surveyed without GPS (New Delhi)
DEFAULT_COORDINATE = Coordinate(latitude=28.7041, longitude=77.1025)


@dataclass(frozen=True)
class UploadLimits:
    """Upload boundary constraints checked before decoding."""
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    allowed_extensions: tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS


@dataclass(frozen=True)
class IngestSettings:
    """Batching policy for segment persistence."""
    batch_size: int = 10  # segments per batch
    batch_delay_seconds: float = 0.1  # pacing delay between batches


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class IngestConfig:
    """Root configuration object for the ingestion process."""
    source_directory: str
    thresholds: ThresholdProfile = field(default_factory=ThresholdProfile)
    default_coordinate: Coordinate = DEFAULT_COORDINATE
    upload: UploadLimits = field(default_factory=UploadLimits)
    ingest: IngestSettings = field(default_factory=IngestSettings)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
