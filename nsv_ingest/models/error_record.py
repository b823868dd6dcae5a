from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for error logging.

Structured error record written as JSON Lines by ErrorLogBuffer. Supports
row=-1 as a sentinel for file-level errors where the row cannot be determined.
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Survey workbook name being processed
        segment: Segment key "<highway>@<start>-<end>", or "<FILE_LEVEL>"
        row: 0-based table row of the failing record. -1 when unknown
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Error message or description
    """
    timestamp: str  # ISO8601 UTC
    file: str
    segment: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, segment: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord with current UTC timestamp."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            segment=segment,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize ErrorRecord to JSON Lines format (no extra keys)."""
        return json.dumps(asdict(self), ensure_ascii=False)
