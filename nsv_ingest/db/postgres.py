from __future__ import annotations

import logging
import os
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from typing import Any

import psycopg2

from ..models.alert import AlertCandidate
from ..models.config_models import DatabaseConfig
from ..models.lane_measurement import LaneMeasurement
from .batch_insert import BatchInsertError, batch_insert
from .repository import RepositoryError, highway_name

"""PostgreSQL repository.

Tables (created outside this tool):
    highways(id serial, nh_number, name, total_length, created_at)
    segments(id serial, highway_id, chainage_start, chainage_end, length, survey_date, created_at)
    lanes(id serial, segment_id, lane_number, latitude, longitude,
          roughness_bi, rut_depth, crack_area, ravelling, created_at)
    alerts(id serial, lane_id, alert_type, severity, threshold_value, actual_value,
           message, is_resolved, created_at, resolved_at)

Each segment is written in its own transaction (BEGIN/COMMIT, ROLLBACK on
error). Earlier segments stay committed when a later one fails, and there is
no upsert: re-ingesting a chainage range creates new rows.

Statement errors become RepositoryError and fail only the current segment.
A lost connection (OperationalError/InterfaceError) is raised unchanged so the
run stops instead of failing every remaining segment.
"""

__all__ = [
    "CONNECTION_ERRORS",
    "PostgresRepository",
    "db_connection",
    "resolve_dsn",
]

logger = logging.getLogger(__name__)

CONNECTION_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError)

LANE_COLUMNS = (
    "segment_id",
    "lane_number",
    "latitude",
    "longitude",
    "roughness_bi",
    "rut_depth",
    "crack_area",
    "ravelling",
)


def resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Resolve connection parameters.

    Priority:
        1. DATABASE_URL / PGDSN environment variables (after .env load)
        2. database.dsn from the config file
        3. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, each falling
           back to the matching config field
    """
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def db_connection(db_cfg: DatabaseConfig) -> Iterator[Any]:  # pragma: no cover (needs a server)
    """Yield a psycopg2 cursor; transaction boundaries are managed by the repository."""
    conn = psycopg2.connect(resolve_dsn(db_cfg))
    conn.autocommit = True  # explicit BEGIN/COMMIT per segment
    cur = conn.cursor()
    try:
        yield cur
    finally:
        cur.close()
        conn.close()


class PostgresRepository:
    """Repository backed by a psycopg2 cursor."""

    def __init__(self, cursor: Any) -> None:
        self.cursor = cursor

    def _fetch_id(self, sql: str, params: Sequence[Any]) -> int:
        try:
            self.cursor.execute(sql, params)
            row = self.cursor.fetchone()
        except CONNECTION_ERRORS:
            raise
        except psycopg2.Error as e:
            raise RepositoryError(str(e).strip()) from e
        if not row:
            raise RepositoryError("statement returned no id")
        return int(row[0])

    def find_or_create_highway(self, code: str) -> tuple[int, bool]:
        try:
            self.cursor.execute("SELECT id FROM highways WHERE nh_number = %s", (code,))
            row = self.cursor.fetchone()
        except CONNECTION_ERRORS:
            raise
        except psycopg2.Error as e:
            raise RepositoryError(str(e).strip()) from e
        if row:
            return int(row[0]), False
        highway_id = self._fetch_id(
            "INSERT INTO highways (nh_number, name, total_length) VALUES (%s, %s, %s) RETURNING id",
            (code, highway_name(code), 0),
        )
        return highway_id, True

    def create_segment(
        self, highway_id: int, chainage_start: float, chainage_end: float, survey_date: datetime
    ) -> int:
        return self._fetch_id(
            "INSERT INTO segments (highway_id, chainage_start, chainage_end, length, survey_date) "
            "VALUES (%s, %s, %s, %s, %s) RETURNING id",
            (highway_id, chainage_start, chainage_end, chainage_end - chainage_start, survey_date),
        )

    def bulk_create_lanes(self, segment_id: int, measurements: Sequence[LaneMeasurement]) -> list[int]:
        rows = [
            (
                segment_id,
                m.lane_id.value,
                m.latitude,
                m.longitude,
                m.roughness,
                m.rut_depth,
                m.crack_area,
                m.ravelling,
            )
            for m in measurements
        ]
        try:
            result = batch_insert(self.cursor, "lanes", LANE_COLUMNS, rows, returning=["id"])
        except BatchInsertError as e:
            raise RepositoryError(str(e)) from e
        ids = [int(r[0]) for r in result.returned_values]
        if len(ids) != len(rows):
            raise RepositoryError(f"expected {len(rows)} lane ids, got {len(ids)}")
        return ids

    def create_alert(self, lane_id: int, candidate: AlertCandidate) -> int:
        return self._fetch_id(
            "INSERT INTO alerts (lane_id, alert_type, severity, threshold_value, actual_value, "
            "message, is_resolved) VALUES (%s, %s, %s, %s, %s, %s, %s) RETURNING id",
            (
                lane_id,
                candidate.distress_type.value,
                candidate.severity.value,
                candidate.threshold_value,
                candidate.actual_value,
                candidate.message,
                False,
            ),
        )

    @contextmanager
    def segment_scope(self) -> Iterator[None]:
        try:
            self.cursor.execute("BEGIN")
        except CONNECTION_ERRORS:
            raise
        except psycopg2.Error as e:
            raise RepositoryError(f"failed to begin transaction: {e}") from e
        try:
            yield
        except Exception as e:
            try:
                self.cursor.execute("ROLLBACK")
            except psycopg2.Error:
                logger.warning("rollback failed after segment error", exc_info=True)
            if isinstance(e, (RepositoryError, *CONNECTION_ERRORS)):
                raise
            raise RepositoryError(str(e)) from e
        try:
            self.cursor.execute("COMMIT")
        except CONNECTION_ERRORS:
            raise
        except psycopg2.Error as e:
            raise RepositoryError(f"commit failed: {e}") from e
