from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

"""Result and statistics models for NSV ingestion.

DecodeStats makes the decoder's skip-on-defect policy observable; IngestResult
carries the per-category counts reported to the caller instead of a boolean
success flag. ProcessingResult/FileStat aggregate a whole CLI run.
"""


@dataclass
class DecodeStats:
    """Counters collected during one decoder pass."""
    scanned_rows: int = 0  # rows from the data start onwards
    data_start_row: int = 0
    admitted_rows: int = 0
    skipped_missing_fields: int = 0  # highway code / chainage cell blank
    skipped_invalid_chainage: int = 0  # non-numeric or not end > start > 0
    emitted_lanes: int = 0
    dropped_empty_lanes: int = 0  # lane slots with no data at all

    @property
    def skipped_rows(self) -> int:
        return self.skipped_missing_fields + self.skipped_invalid_chainage


@dataclass(frozen=True)
class IngestResult:
    """Entities actually created for one ingestion (partial success allowed)."""
    highways: int = 0
    segments: int = 0
    lanes: int = 0
    alerts: int = 0
    failed_segments: int = 0
    skipped_rows: int = 0
    elapsed_seconds: float = 0.0

    def __add__(self, other: IngestResult) -> IngestResult:
        if not isinstance(other, IngestResult):
            return NotImplemented
        return IngestResult(
            highways=self.highways + other.highways,
            segments=self.segments + other.segments,
            lanes=self.lanes + other.lanes,
            alerts=self.alerts + other.alerts,
            failed_segments=self.failed_segments + other.failed_segments,
            skipped_rows=self.skipped_rows + other.skipped_rows,
            elapsed_seconds=self.elapsed_seconds + other.elapsed_seconds,
        )

    def as_counts(self) -> dict[str, int]:
        return {
            "highways": self.highways,
            "segments": self.segments,
            "lanes": self.lanes,
            "alerts": self.alerts,
        }


@dataclass(frozen=True)
class FileStat:
    """Per-file processing statistics (helper for ProcessingResult)."""
    file_name: str
    status: str  # success/partial/failed
    result: IngestResult
    error: str | None = None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregated results for a run over one or more survey workbooks."""
    success_files: int
    failed_files: int
    totals: IngestResult
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_stats: list[FileStat] | None = None
