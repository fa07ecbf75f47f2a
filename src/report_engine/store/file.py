"""
File-backed record store.

One JSON file per record under <state_dir>/<collection>/. Writes go to a
temporary file that is atomically renamed over the target, so readers never
observe a partially written record.
"""

import json
import logging
import os
import re
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path

from prometheus_client import Counter

from utils.metrics import get_or_create_metric

from ..errors import ConcurrentUpdateError, NotFoundError
from .base import COLLECTIONS, Document, RecordStore

logger = logging.getLogger(__name__)


STORE_OPERATIONS = get_or_create_metric(
    lambda: Counter(
        "report_store_operations_total",
        "Record store file operations",
        ["operation", "collection"],
    ),
    "report_store_operations_total",
)


class FileRecordStore(RecordStore):
    """
    Record store persisting JSON documents in a state directory

    Compare-and-swap is serialized by a process-wide lock; the store assumes
    a single engine process per state directory.
    """

    def __init__(self, state_dir: str = "./report_state"):
        """
        Initialize file store

        Args:
            state_dir: Directory to store record files
        """
        self.state_dir = Path(state_dir)
        self._lock = threading.RLock()

        for collection in COLLECTIONS:
            (self.state_dir / collection).mkdir(parents=True, exist_ok=True)

        logger.info(f"Initialized record store with state dir: {self.state_dir}")

    def create(self, collection: str, record: Document) -> Document:
        with self._lock:
            path = self._record_file(collection, record["id"])
            if path.exists():
                raise ConcurrentUpdateError(f"{collection}/{record['id']} already exists")
            stored = dict(record, version=1)
            self._write(path, stored)
            STORE_OPERATIONS.labels(operation="create", collection=collection).inc()
            return stored

    def get(self, collection: str, record_id: str) -> Document:
        path = self._record_file(collection, record_id)
        try:
            with open(path) as f:
                record = json.load(f)
        except FileNotFoundError:
            raise NotFoundError(f"{collection}/{record_id} not found") from None

        STORE_OPERATIONS.labels(operation="load", collection=collection).inc()
        return record

    def list(
        self,
        collection: str,
        predicate: Callable[[Document], bool] | None = None,
    ) -> list[Document]:
        directory = self.state_dir / collection
        records = []

        for path in sorted(directory.glob("*.json")):
            if path.name.startswith(".tmp-"):
                continue
            try:
                with open(path) as f:
                    record = json.load(f)
            except FileNotFoundError:
                # Deleted between glob and open
                continue
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping unreadable record file {path}: {e}")
                continue

            if predicate is None or predicate(record):
                records.append(record)

        return sorted(records, key=lambda r: r["id"])

    def update_if_version(
        self,
        collection: str,
        record: Document,
        expected_version: int,
    ) -> Document:
        with self._lock:
            current = self.get(collection, record["id"])
            if current.get("version") != expected_version:
                raise ConcurrentUpdateError(
                    f"{collection}/{record['id']} is at version {current.get('version')}, "
                    f"expected {expected_version}"
                )
            stored = dict(record, version=expected_version + 1)
            self._write(self._record_file(collection, record["id"]), stored)
            STORE_OPERATIONS.labels(operation="update", collection=collection).inc()
            return stored

    def delete(self, collection: str, record_id: str) -> None:
        with self._lock:
            path = self._record_file(collection, record_id)
            if not path.exists():
                raise NotFoundError(f"{collection}/{record_id} not found")
            path.unlink()
            STORE_OPERATIONS.labels(operation="delete", collection=collection).inc()
            logger.info(f"Deleted {collection}/{record_id}")

    def _write(self, path: Path, record: Document) -> None:
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(record, f, indent=2, sort_keys=True)
            os.replace(tmp_name, path)
        except Exception as e:
            logger.error(f"Failed to write record file {path}: {e}")
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _record_file(self, collection: str, record_id: str) -> Path:
        """Get record file path, sanitizing the id for the filesystem."""
        safe_id = re.sub(r'[/\\:*?"<>|]', '_', record_id)
        return self.state_dir / collection / f"{safe_id}.json"
