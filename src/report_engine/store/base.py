"""
Record store contract.

Records are persisted as plain dictionaries keyed by collection and id. Each
record carries an integer "version"; update_if_version is an atomic
compare-and-swap on that version and is the only way to modify a record.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

SCHEDULED_REPORTS = "scheduled_reports"
GENERATED_REPORTS = "generated_reports"
RECONCILIATIONS = "reconciliations"

COLLECTIONS = (SCHEDULED_REPORTS, GENERATED_REPORTS, RECONCILIATIONS)

Document = dict[str, Any]


class RecordStore(ABC):
    """Durable storage for jobs, runs and reconciliation records."""

    @abstractmethod
    def create(self, collection: str, record: Document) -> Document:
        """
        Insert a new record

        Args:
            collection: Collection name
            record: Record with an "id" key

        Returns:
            Stored copy with "version" set to 1

        Raises:
            ConcurrentUpdateError: If a record with the same id exists
        """

    @abstractmethod
    def get(self, collection: str, record_id: str) -> Document:
        """
        Fetch a record by id

        Raises:
            NotFoundError: If the record does not exist
        """

    @abstractmethod
    def list(
        self,
        collection: str,
        predicate: Callable[[Document], bool] | None = None,
    ) -> list[Document]:
        """Records matching the predicate (all when None), ordered by id."""

    @abstractmethod
    def update_if_version(
        self,
        collection: str,
        record: Document,
        expected_version: int,
    ) -> Document:
        """
        Replace a record if its stored version still equals expected_version

        Returns:
            Stored copy with version incremented

        Raises:
            NotFoundError: If the record does not exist
            ConcurrentUpdateError: If the stored version differs
        """

    @abstractmethod
    def delete(self, collection: str, record_id: str) -> None:
        """
        Remove a record

        Raises:
            NotFoundError: If the record does not exist
        """
