"""Persistence adapters for imported trips."""

from .batch_insert import BatchInsertError, InsertResult, batch_insert
from .trip_store import InMemoryTripStore, PostgresTripStore, TripStore, TripStoreError

__all__ = [
    "BatchInsertError",
    "InMemoryTripStore",
    "InsertResult",
    "PostgresTripStore",
    "TripStore",
    "TripStoreError",
    "batch_insert",
]
