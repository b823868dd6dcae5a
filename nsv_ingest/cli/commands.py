from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from dotenv import load_dotenv

from nsv_ingest.config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config
from nsv_ingest.db.postgres import CONNECTION_ERRORS, PostgresRepository, db_connection
from nsv_ingest.db.repository import InMemoryRepository, Repository
from nsv_ingest.excel.inspect import inspect_table
from nsv_ingest.excel.reader import TableReadError, frame_to_rows, read_first_sheet
from nsv_ingest.logging.init import log_summary, set_debug, setup_logging
from nsv_ingest.models.config_models import IngestConfig
from nsv_ingest.models.ingest_result import ProcessingResult
from nsv_ingest.services.orchestrator import (
    ProcessingError,
    process_all,
    process_files,
    scan_survey_files,
)
from nsv_ingest.services.summary import render_summary_line

"""CLI commands for `python -m nsv_ingest.cli [options] [FILES...]`.

- Load .env, then config
- Ingest the given workbooks, or every workbook in source_directory
- --inspect-data prints the table structure of each workbook and exits
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; .env values win over the process environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _survey_date(value: str) -> datetime:
    try:
        return datetime.strptime(value, "%Y-%m-%d").replace(tzinfo=UTC)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid survey date {value!r} (expected YYYY-MM-DD)") from e


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="NSV road-condition survey ingestion")
    p.add_argument("files", nargs="*", type=Path, help="Survey workbooks (default: scan source_directory)")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print workbook structure then exit")
    p.add_argument("--survey-date", type=_survey_date, default=None, help="Survey date (YYYY-MM-DD)")
    return p.parse_args(argv)


def _target_files(cfg: IngestConfig, files: list[Path]) -> list[Path]:
    if files:
        return files
    return scan_survey_files(Path(cfg.source_directory), cfg.upload.allowed_extensions)


def _inspect_data(paths: list[Path]) -> int:
    if not paths:
        print("inspect: no survey workbooks")
        return EXIT_SUCCESS_ALL
    for f in paths:
        try:
            sheet_name, df = read_first_sheet(f)
        except TableReadError as e:
            print(json.dumps({"file_name": f.name, "error": str(e)}, ensure_ascii=False))
            continue
        inspection = inspect_table(frame_to_rows(df), file_name=f.name, sheet_name=sheet_name)
        print(json.dumps(inspection.to_dict(), ensure_ascii=False, default=str))
    return EXIT_SUCCESS_ALL


def _exit_code(result: ProcessingResult) -> int:
    if result.failed_files > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only -> read sys.argv (an empty list means "no arguments")
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    try:
        paths = _target_files(cfg, list(args.files))
    except ProcessingError as e:
        logger.error(str(e))
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(paths)

    logger.info(f"Ingesting {len(paths)} survey workbook(s)")

    def run(repository: Repository) -> ProcessingResult:
        if args.files:
            return process_files(paths, cfg, repository, survey_date=args.survey_date)
        return process_all(cfg, repository, survey_date=args.survey_date)

    db_mode = "mock"
    try:
        if os.getenv("DISABLE_DB_CONNECT") == "1":
            logger.debug("DB connect disabled via DISABLE_DB_CONNECT=1 -> mock mode")
            result = run(InMemoryRepository())
        else:
            db_mode = "live"
            result, db_mode = _run_live(cfg, run, logger)
    except ProcessingError as e:
        logger.error(f"processing({db_mode}): {e}")
        return EXIT_FATAL

    logger.info(f"mode={db_mode} lanes={result.totals.lanes} alerts={result.totals.alerts}")

    total_files = result.success_files + result.failed_files
    summary_line = render_summary_line(total_files, result)
    # log_summary adds the "SUMMARY " label
    log_summary(summary_line[len("SUMMARY "):])

    return _exit_code(result)


def _run_live(
    cfg: IngestConfig, run: Callable[[Repository], ProcessingResult], logger: logging.Logger
) -> tuple[ProcessingResult, str]:
    connected = False
    try:
        with db_connection(cfg.database) as cur:
            connected = True
            return run(PostgresRepository(cur)), "live"
    except CONNECTION_ERRORS as db_e:
        if connected:
            raise ProcessingError(f"database connection lost: {db_e}") from db_e
        logger.info(f"DB connection failed -> fallback to mock mode: {db_e}")
    return run(InMemoryRepository()), "mock"
