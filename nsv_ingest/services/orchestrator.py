from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

from ..db.repository import Repository
from ..excel.reader import TableReadError
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..models.config_models import IngestConfig
from ..models.ingest_result import FileStat, IngestResult, ProcessingResult
from .pipeline import EmptyResultError, ingest_file
from .progress import ProgressTracker
from .upload import UploadRejectedError

"""Run orchestration over survey workbooks.

- Scans the configured directory (non-recursive) for allowed extensions
- Ingests each workbook independently; a rejected, unreadable or empty workbook
  is recorded as failed and the run continues
- Aggregates per-file counts and flushes the error log once
"""

__all__ = [
    "ProcessingError",
    "process_all",
    "process_files",
    "scan_survey_files",
]

logger = logging.getLogger(__name__)

FILE_LEVEL = "<FILE_LEVEL>"

STATUS_SUCCESS = "success"
STATUS_PARTIAL = "partial"  # some segments failed to persist
STATUS_FAILED = "failed"


class ProcessingError(Exception):
    """Fatal run-level error (nothing was processed)."""


def scan_survey_files(directory: Path, extensions: Sequence[str]) -> list[Path]:
    """Survey workbooks in `directory` (non-recursive), sorted by name.

    Raises:
        ProcessingError: if the directory doesn't exist or can't be read
    """
    if not directory.exists():
        raise ProcessingError(f"Directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"Path is not a directory: {directory}")
    allowed = {e.lower() for e in extensions}
    try:
        return sorted(
            (p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in allowed),
            key=lambda p: p.name,
        )
    except OSError as e:
        raise ProcessingError(f"Error reading directory {directory}: {e}") from e


def _file_failure(
    file_path: Path, error_log: ErrorLogBuffer, error_type: str, error: Exception
) -> FileStat:
    logger.error("%s: %s", file_path.name, error)
    error_log.append(
        ErrorRecord.create(
            file=file_path.name,
            segment=FILE_LEVEL,
            row=-1,
            error_type=error_type,
            message=str(error),
        )
    )
    return FileStat(
        file_name=file_path.name, status=STATUS_FAILED, result=IngestResult(), error=str(error)
    )


def _process_single_file(
    file_path: Path,
    config: IngestConfig,
    repository: Repository,
    error_log: ErrorLogBuffer,
    survey_date: datetime | None,
) -> FileStat:
    try:
        result = ingest_file(
            file_path, config, repository, survey_date=survey_date, error_log=error_log
        )
    except UploadRejectedError as e:
        return _file_failure(file_path, error_log, "UPLOAD_REJECTED", e)
    except TableReadError as e:
        return _file_failure(file_path, error_log, "TABLE_READ_ERROR", e)
    except EmptyResultError as e:
        return _file_failure(file_path, error_log, "NO_VALID_DATA", e)
    except OSError as e:
        return _file_failure(file_path, error_log, "FILE_ACCESS_ERROR", e)

    status = STATUS_PARTIAL if result.failed_segments else STATUS_SUCCESS
    logger.info(
        "%s: highways=%d segments=%d lanes=%d alerts=%d failed_segments=%d skipped_rows=%d",
        file_path.name,
        result.highways,
        result.segments,
        result.lanes,
        result.alerts,
        result.failed_segments,
        result.skipped_rows,
    )
    return FileStat(file_name=file_path.name, status=status, result=result)


def process_files(
    file_paths: Sequence[Path],
    config: IngestConfig,
    repository: Repository,
    *,
    survey_date: datetime | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ProcessingResult:
    """Ingest the given workbooks in order and aggregate the results."""
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()

    file_stats: list[FileStat] = []
    totals = IngestResult()
    success_count = failed_count = 0

    with ProgressTracker(len(file_paths)) as progress:
        for file_path in file_paths:
            progress.start_file(file_path)
            stat = _process_single_file(file_path, config, repository, error_log, survey_date)
            file_stats.append(stat)
            totals = totals + stat.result
            if stat.status == STATUS_SUCCESS:
                success_count += 1
            else:
                failed_count += 1
            progress.set_postfix(
                success=success_count, failed=failed_count, lanes=totals.lanes
            )
            progress.finish_file(success=stat.status == STATUS_SUCCESS)

    try:
        error_log.flush()
    except OSError:
        logger.warning("failed to write error log", exc_info=True)

    end_time = datetime.now(UTC)
    return ProcessingResult(
        success_files=success_count,
        failed_files=failed_count,
        totals=totals,
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_stats=file_stats,
    )


def process_all(
    config: IngestConfig,
    repository: Repository,
    *,
    survey_date: datetime | None = None,
    error_log: ErrorLogBuffer | None = None,
) -> ProcessingResult:
    """Ingest every survey workbook in the configured source directory.

    Raises:
        ProcessingError: when the source directory cannot be scanned
    """
    file_paths = scan_survey_files(Path(config.source_directory), config.upload.allowed_extensions)
    if not file_paths:
        logger.info("no survey workbooks found in %s", config.source_directory)
    return process_files(
        file_paths, config, repository, survey_date=survey_date, error_log=error_log
    )
