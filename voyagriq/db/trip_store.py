from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol

from .batch_insert import BatchInsertError, batch_insert

"""Trip storage port used by the bulk import flow.

Tenancy: every call is scoped by ``user_id``; a trip_id only has to be unique
within its tenant. The hosted database enforces the same rule with a unique
(user_id, trip_id) constraint and row-level security.
"""

__all__ = [
    "TRIP_COLUMNS",
    "TripStore",
    "TripStoreError",
    "InMemoryTripStore",
    "PostgresTripStore",
]

logger = logging.getLogger(__name__)

TRIP_COLUMNS = (
    "trip_id", "client_name", "travel_agency", "start_date", "end_date",
    "destination_country", "destination_city", "adults", "children", "total_travelers",
    "flight_cost", "hotel_cost", "ground_transport", "activities_tours", "meals_cost",
    "insurance_cost", "other_costs", "currency", "commission_rate", "commission_amount",
    "client_id", "client_type",
)


class TripStoreError(Exception):
    """Raised when the store rejects a write."""


class TripStore(Protocol):
    def count_trips(self, user_id: str) -> int: ...

    def existing_trip_ids(self, user_id: str, trip_ids: Sequence[str]) -> set[str]: ...

    def insert_trips(self, user_id: str, records: Sequence[Mapping[str, Any]]) -> int: ...


class InMemoryTripStore:
    """Dict-backed store; used by tests and dry runs."""

    def __init__(self) -> None:
        self._trips: dict[str, dict[str, dict[str, Any]]] = {}

    def count_trips(self, user_id: str) -> int:
        return len(self._trips.get(user_id, {}))

    def existing_trip_ids(self, user_id: str, trip_ids: Sequence[str]) -> set[str]:
        owned = self._trips.get(user_id, {})
        return {t for t in trip_ids if t in owned}

    def insert_trips(self, user_id: str, records: Sequence[Mapping[str, Any]]) -> int:
        """All-or-nothing insert of one batch."""
        owned = self._trips.setdefault(user_id, {})
        batch_ids = [r["trip_id"] for r in records]
        clash = [t for t in batch_ids if t in owned]
        if clash or len(set(batch_ids)) != len(batch_ids):
            raise TripStoreError(f"duplicate trip_id for tenant {user_id}: {sorted(set(clash)) or batch_ids}")
        for record in records:
            owned[record["trip_id"]] = dict(record)
        return len(records)

    def trips_for(self, user_id: str) -> list[dict[str, Any]]:
        return list(self._trips.get(user_id, {}).values())


class PostgresTripStore:
    """psycopg2-backed store over the ``trips`` table.

    The caller owns the connection and its transaction boundaries.
    """

    def __init__(self, cursor: Any, table: str = "trips", page_size: int = 1000) -> None:
        self.cursor = cursor
        self.table = table
        self.page_size = page_size

    def count_trips(self, user_id: str) -> int:
        self.cursor.execute(f"SELECT count(*) FROM {self.table} WHERE user_id = %s", (user_id,))
        row = self.cursor.fetchone()
        return int(row[0]) if row else 0

    def existing_trip_ids(self, user_id: str, trip_ids: Sequence[str]) -> set[str]:
        if not trip_ids:
            return set()
        self.cursor.execute(
            f"SELECT trip_id FROM {self.table} WHERE user_id = %s AND trip_id = ANY(%s)",
            (user_id, list(trip_ids)),
        )
        return {r[0] for r in self.cursor.fetchall()}

    def insert_trips(self, user_id: str, records: Sequence[Mapping[str, Any]]) -> int:
        columns = ("user_id",) + TRIP_COLUMNS
        rows: Iterable[Sequence[Any]] = [
            (user_id,) + tuple(record.get(c) for c in TRIP_COLUMNS) for record in records
        ]
        # savepoint keeps the surrounding transaction usable after a rejected batch
        self.cursor.execute("SAVEPOINT trip_batch")
        try:
            result = batch_insert(self.cursor, self.table, columns, rows, page_size=self.page_size)
        except BatchInsertError as e:
            self.cursor.execute("ROLLBACK TO SAVEPOINT trip_batch")
            logger.error(f"insert into {self.table} failed for tenant {user_id}: {e}")
            raise TripStoreError(str(e)) from e
        self.cursor.execute("RELEASE SAVEPOINT trip_batch")
        return result.inserted_rows
