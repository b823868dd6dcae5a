from __future__ import annotations

from ..models.ingest_result import ProcessingResult

"""SUMMARY line rendering.

Format:
SUMMARY files={total}/{total} success={s} failed={f} highways={h} segments={g}
lanes={l} alerts={a} skipped_rows={r} elapsed_sec={e}
"""


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # avoid scientific notation
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(total_files: int, result: ProcessingResult) -> str:
    """Render the SUMMARY line for a run.

    Examples:
        >>> from datetime import datetime, timezone
        >>> from nsv_ingest.models.ingest_result import IngestResult
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = ProcessingResult(
        ...     success_files=1, failed_files=0,
        ...     totals=IngestResult(highways=1, segments=2, lanes=16, alerts=3),
        ...     start_time=start, end_time=end, elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(1, result)
        'SUMMARY files=1/1 success=1 failed=0 highways=1 segments=2 lanes=16 alerts=3 skipped_rows=0 elapsed_sec=2'
    """
    t = result.totals
    return (
        f"SUMMARY files={total_files}/{total_files} "
        f"success={result.success_files} "
        f"failed={result.failed_files} "
        f"highways={t.highways} "
        f"segments={t.segments} "
        f"lanes={t.lanes} "
        f"alerts={t.alerts} "
        f"skipped_rows={t.skipped_rows} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
