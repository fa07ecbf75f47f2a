"""
Read-only data source contract used by the analytics aggregator and the
reconciliation matcher.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime

from .records import Lease, MaintenanceRequest, Property, Tenant, Transaction, Unit


class DataSource(ABC):
    """
    Abstract access to ledger and portfolio records

    Implementations return plain record objects. Filters left as None mean
    "no restriction".
    """

    @abstractmethod
    def transactions(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        property_ids: Iterable[str] | None = None,
    ) -> list[Transaction]:
        """Transactions dated within [start, end], optionally restricted to properties."""

    @abstractmethod
    def properties(self, ids: Iterable[str] | None = None) -> list[Property]:
        pass

    @abstractmethod
    def units(self, property_ids: Iterable[str] | None = None) -> list[Unit]:
        pass

    @abstractmethod
    def leases(self, property_ids: Iterable[str] | None = None) -> list[Lease]:
        pass

    @abstractmethod
    def tenants(self) -> list[Tenant]:
        pass

    @abstractmethod
    def maintenance_requests(
        self, property_ids: Iterable[str] | None = None
    ) -> list[MaintenanceRequest]:
        pass
