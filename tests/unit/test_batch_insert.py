from __future__ import annotations

import psycopg2
import pytest

from nsv_ingest.db.batch_insert import BatchInsertError, InsertResult, batch_insert


class DummyCursor:
    def __init__(self) -> None:
        self.queries: list[str] = []
        self.page_sizes: list[int] = []


# execute_values is monkeypatched inside the module so no server is needed

@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    import nsv_ingest.db.batch_insert as bi

    def fake_execute_values(cursor, sql, rows, page_size=100, fetch=False):
        cursor.queries.append(sql)
        cursor.page_sizes.append(page_size)
        return [(100 + i,) for i in range(len(rows))] if fetch else None

    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return fake_execute_values


def test_batch_insert_returning_keeps_order():
    cur = DummyCursor()
    rows = [[1, f"L{i}"] for i in range(1, 5)]
    res = batch_insert(cur, "lanes", ["segment_id", "lane_number"], rows, returning=["id"])
    assert isinstance(res, InsertResult)
    assert res.inserted_rows == 4
    assert res.returned_values == [(100,), (101,), (102,), (103,)]
    assert cur.queries == ['INSERT INTO lanes ("segment_id","lane_number") VALUES %s RETURNING "id"']
    # one page so that every returned id is fetched
    assert cur.page_sizes == [4]


def test_batch_insert_empty():
    cur = DummyCursor()
    assert batch_insert(cur, "lanes", ["segment_id"], [], returning=["id"]) == InsertResult(0, [])
    assert cur.queries == []


def test_batch_insert_error(monkeypatch):
    import nsv_ingest.db.batch_insert as bi

    def boom(*args, **kwargs):
        raise psycopg2.IntegrityError("null value in column \"segment_id\"")

    monkeypatch.setattr(bi, "execute_values", boom)
    with pytest.raises(BatchInsertError, match="null value"):
        batch_insert(DummyCursor(), "lanes", ["segment_id"], [[None]], returning=["id"])


@pytest.mark.parametrize("exc_type", [psycopg2.OperationalError, psycopg2.InterfaceError])
def test_batch_insert_connection_error_passes_through(monkeypatch, exc_type):
    import nsv_ingest.db.batch_insert as bi

    def gone(*args, **kwargs):
        raise exc_type("server closed the connection unexpectedly")

    monkeypatch.setattr(bi, "execute_values", gone)
    with pytest.raises(exc_type):
        batch_insert(DummyCursor(), "lanes", ["segment_id"], [[1]], returning=["id"])
