from __future__ import annotations

from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from .column_map import DATA_START_MARKER, HIGHWAY_CODE_COL, column_legend
from .decoder import find_data_start

"""Table introspection for diagnosing malformed uploads without ingesting."""

__all__ = [
    "TableInspection",
    "inspect_table",
]

SAMPLE_ROWS = 5


@dataclass(frozen=True)
class TableInspection:
    file_name: str | None
    sheet_name: str | None
    total_rows: int
    total_columns: int
    header_row: list[Any] | None
    first_data_row: list[Any] | None
    data_start_row: int
    first_rows: list[list[Any]] = field(default_factory=list)
    column_mapping: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _jsonable(value: Any) -> Any:
    # datetime cells are not JSON serialisable
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def _row(row: Sequence[Any]) -> list[Any]:
    return [_jsonable(v) for v in row]


def inspect_table(
    rows: Sequence[Sequence[Any]],
    *,
    file_name: str | None = None,
    sheet_name: str | None = None,
) -> TableInspection:
    """Describe the structure the decoder will see for this table."""
    first_data_row = None
    for row in rows:
        if row and row[HIGHWAY_CODE_COL] is not None and DATA_START_MARKER in str(row[HIGHWAY_CODE_COL]):
            first_data_row = _row(row)
            break
    return TableInspection(
        file_name=file_name,
        sheet_name=sheet_name,
        total_rows=len(rows),
        total_columns=max((len(r) for r in rows), default=0),
        header_row=_row(rows[0]) if rows else None,
        first_data_row=first_data_row,
        data_start_row=find_data_start(rows),
        first_rows=[_row(r) for r in rows[:SAMPLE_ROWS]],
        column_mapping=column_legend(),
    )
