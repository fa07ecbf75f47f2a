"""
Thread-safe in-memory record store.
"""

import copy
import threading
from collections.abc import Callable

from ..errors import ConcurrentUpdateError, NotFoundError
from .base import COLLECTIONS, Document, RecordStore


class InMemoryRecordStore(RecordStore):
    """
    Record store backed by dictionaries

    Stored and returned records are deep copies so callers can never mutate
    stored state without going through update_if_version.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._collections: dict[str, dict[str, Document]] = {name: {} for name in COLLECTIONS}

    def _records(self, collection: str) -> dict[str, Document]:
        return self._collections.setdefault(collection, {})

    def create(self, collection: str, record: Document) -> Document:
        with self._lock:
            records = self._records(collection)
            if record["id"] in records:
                raise ConcurrentUpdateError(f"{collection}/{record['id']} already exists")
            stored = copy.deepcopy(record)
            stored["version"] = 1
            records[stored["id"]] = stored
            return copy.deepcopy(stored)

    def get(self, collection: str, record_id: str) -> Document:
        with self._lock:
            try:
                return copy.deepcopy(self._records(collection)[record_id])
            except KeyError:
                raise NotFoundError(f"{collection}/{record_id} not found") from None

    def list(
        self,
        collection: str,
        predicate: Callable[[Document], bool] | None = None,
    ) -> list[Document]:
        with self._lock:
            snapshot = [copy.deepcopy(r) for _, r in sorted(self._records(collection).items())]
        return [r for r in snapshot if predicate is None or predicate(r)]

    def update_if_version(
        self,
        collection: str,
        record: Document,
        expected_version: int,
    ) -> Document:
        with self._lock:
            records = self._records(collection)
            current = records.get(record["id"])
            if current is None:
                raise NotFoundError(f"{collection}/{record['id']} not found")
            if current["version"] != expected_version:
                raise ConcurrentUpdateError(
                    f"{collection}/{record['id']} is at version {current['version']}, "
                    f"expected {expected_version}"
                )
            stored = copy.deepcopy(record)
            stored["version"] = expected_version + 1
            records[stored["id"]] = stored
            return copy.deepcopy(stored)

    def delete(self, collection: str, record_id: str) -> None:
        with self._lock:
            records = self._records(collection)
            if record_id not in records:
                raise NotFoundError(f"{collection}/{record_id} not found")
            del records[record_id]
