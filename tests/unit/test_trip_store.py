from __future__ import annotations

import importlib

import pytest

from voyagriq.db.batch_insert import BatchInsertError
from voyagriq.db.trip_store import TRIP_COLUMNS, InMemoryTripStore, PostgresTripStore, TripStoreError


def _record(trip_id: str, **extra) -> dict:
    record = {c: None for c in TRIP_COLUMNS}
    record.update(trip_id=trip_id, client_name="Acme", **extra)
    return record


class TestInMemoryTripStore:
    def test_insert_and_count_per_tenant(self):
        store = InMemoryTripStore()
        assert store.insert_trips("u1", [_record("T1"), _record("T2")]) == 2
        store.insert_trips("u2", [_record("T1")])

        assert store.count_trips("u1") == 2
        assert store.count_trips("u2") == 1
        assert store.count_trips("nobody") == 0

    def test_existing_trip_ids_scoped_to_tenant(self):
        store = InMemoryTripStore()
        store.insert_trips("u1", [_record("T1")])
        assert store.existing_trip_ids("u1", ["T1", "T9"]) == {"T1"}
        assert store.existing_trip_ids("u2", ["T1"]) == set()

    def test_clashing_batch_is_all_or_nothing(self):
        store = InMemoryTripStore()
        store.insert_trips("u1", [_record("T1")])
        with pytest.raises(TripStoreError):
            store.insert_trips("u1", [_record("T2"), _record("T1")])
        assert store.count_trips("u1") == 1

    def test_duplicate_inside_batch_rejected(self):
        store = InMemoryTripStore()
        with pytest.raises(TripStoreError):
            store.insert_trips("u1", [_record("T1"), _record("T1")])
        assert store.count_trips("u1") == 0

    def test_trips_for_returns_copies(self):
        store = InMemoryTripStore()
        store.insert_trips("u1", [_record("T1", currency="USD")])
        (trip,) = store.trips_for("u1")
        assert trip["currency"] == "USD"


class RecordingCursor:
    def __init__(self, fetchone=None, fetchall=None) -> None:
        self.statements: list[tuple[str, object]] = []
        self._fetchone = fetchone
        self._fetchall = fetchall or []

    def execute(self, sql, params=None):
        self.statements.append((sql, params))

    def fetchone(self):
        return self._fetchone

    def fetchall(self):
        return self._fetchall


class TestPostgresTripStore:
    def test_count_trips(self):
        cur = RecordingCursor(fetchone=(7,))
        assert PostgresTripStore(cur).count_trips("u1") == 7
        assert cur.statements == [("SELECT count(*) FROM trips WHERE user_id = %s", ("u1",))]

    def test_existing_trip_ids(self):
        cur = RecordingCursor(fetchall=[("T1",)])
        assert PostgresTripStore(cur).existing_trip_ids("u1", ["T1", "T2"]) == {"T1"}
        sql, params = cur.statements[0]
        assert "trip_id = ANY(%s)" in sql
        assert params == ("u1", ["T1", "T2"])

    def test_existing_trip_ids_empty_skips_query(self):
        cur = RecordingCursor()
        assert PostgresTripStore(cur).existing_trip_ids("u1", []) == set()
        assert cur.statements == []

    def test_insert_wraps_batch_in_savepoint(self, monkeypatch):
        bi = importlib.import_module("voyagriq.db.batch_insert")

        sent: list = []
        monkeypatch.setattr(bi, "execute_values", lambda cur, sql, rows, page_size=1000: sent.append((sql, rows)))
        cur = RecordingCursor()

        assert PostgresTripStore(cur, page_size=50).insert_trips("u1", [_record("T1")]) == 1

        assert [s for s, _ in cur.statements] == ["SAVEPOINT trip_batch", "RELEASE SAVEPOINT trip_batch"]
        sql, rows = sent[0]
        assert sql.startswith('INSERT INTO trips ("user_id","trip_id","client_name"')
        assert rows[0][:3] == ("u1", "T1", "Acme")
        assert len(rows[0]) == len(TRIP_COLUMNS) + 1

    def test_failed_batch_rolls_back_to_savepoint(self, monkeypatch):
        import voyagriq.db.trip_store as ts

        def boom(*args, **kwargs):
            raise BatchInsertError("duplicate key")

        monkeypatch.setattr(ts, "batch_insert", boom)
        cur = RecordingCursor()

        with pytest.raises(TripStoreError, match="duplicate key"):
            PostgresTripStore(cur).insert_trips("u1", [_record("T1")])
        assert [s for s, _ in cur.statements] == ["SAVEPOINT trip_batch", "ROLLBACK TO SAVEPOINT trip_batch"]
