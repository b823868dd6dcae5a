from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import psycopg2
from psycopg2.extras import execute_values

"""Batched INSERT ... RETURNING via psycopg2.extras.execute_values.

The returned rows come back in VALUES order, which lets lane ids be zipped
back onto their source measurements. All rows go out as a single page, since
execute_values only fetches the RETURNING rows of the last page.
"""

__all__ = [
    "BatchInsertError",
    "InsertResult",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    returned_values: list[tuple[Any, ...]]


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    returning: Sequence[str],
) -> InsertResult:
    """Insert rows in one execute_values call and fetch the RETURNING columns.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table (trusted identifier)
    columns: insert columns
    rows: row value sequences
    returning: columns for the RETURNING clause (e.g. ["id"])

    Raises
    ------
    BatchInsertError: the statement failed
    psycopg2.OperationalError / psycopg2.InterfaceError: the connection is gone
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0, returned_values=[])

    cols_sql = ",".join(f'"{c}"' for c in columns)
    returning_sql = ",".join(f'"{c}"' for c in returning)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s RETURNING {returning_sql}"

    try:
        returned = execute_values(cursor, sql, rows_list, page_size=len(rows_list), fetch=True)
    except (psycopg2.OperationalError, psycopg2.InterfaceError):
        raise
    except Exception as e:
        raise BatchInsertError(str(e)) from e

    return InsertResult(
        inserted_rows=len(rows_list),
        returned_values=[tuple(r) for r in returned],
    )
