"""
In-memory data source and JSON snapshot loader.
"""

import json
import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from ..errors import ConfigError
from .base import DataSource
from .records import Lease, MaintenanceRequest, Property, Tenant, Transaction, Unit

logger = logging.getLogger(__name__)


def _matches(property_id: str | None, property_ids: set[str] | None) -> bool:
    return property_ids is None or property_id in property_ids


class InMemoryDataSource(DataSource):
    """Data source over lists of records held in memory."""

    def __init__(
        self,
        transactions: Iterable[Transaction] = (),
        properties: Iterable[Property] = (),
        units: Iterable[Unit] = (),
        leases: Iterable[Lease] = (),
        tenants: Iterable[Tenant] = (),
        maintenance_requests: Iterable[MaintenanceRequest] = (),
    ):
        self._transactions = list(transactions)
        self._properties = list(properties)
        self._units = list(units)
        self._leases = list(leases)
        self._tenants = list(tenants)
        self._maintenance = list(maintenance_requests)

    def transactions(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        property_ids: Iterable[str] | None = None,
    ) -> list[Transaction]:
        wanted = set(property_ids) if property_ids is not None else None
        return [
            t for t in self._transactions
            if (start is None or t.date >= start)
            and (end is None or t.date <= end)
            and _matches(t.property_id, wanted)
        ]

    def properties(self, ids: Iterable[str] | None = None) -> list[Property]:
        wanted = set(ids) if ids is not None else None
        return [p for p in self._properties if _matches(p.id, wanted)]

    def units(self, property_ids: Iterable[str] | None = None) -> list[Unit]:
        wanted = set(property_ids) if property_ids is not None else None
        return [u for u in self._units if _matches(u.property_id, wanted)]

    def leases(self, property_ids: Iterable[str] | None = None) -> list[Lease]:
        wanted = set(property_ids) if property_ids is not None else None
        return [lease for lease in self._leases if _matches(lease.property_id, wanted)]

    def tenants(self) -> list[Tenant]:
        return list(self._tenants)

    def maintenance_requests(
        self, property_ids: Iterable[str] | None = None
    ) -> list[MaintenanceRequest]:
        wanted = set(property_ids) if property_ids is not None else None
        return [m for m in self._maintenance if _matches(m.property_id, wanted)]


def load_snapshot(path: str | Path) -> InMemoryDataSource:
    """
    Load a data snapshot from a JSON file

    The file holds one list per record kind: "transactions", "properties",
    "units", "leases", "tenants" and "maintenance_requests". Missing keys
    are treated as empty.

    Args:
        path: Path to the snapshot file

    Returns:
        InMemoryDataSource over the snapshot

    Raises:
        ConfigError: If the file is missing or malformed
    """
    path = Path(path)

    try:
        with open(path) as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Data snapshot not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Data snapshot {path} is not valid JSON: {e}") from e

    try:
        source = InMemoryDataSource(
            transactions=[Transaction.from_dict(r) for r in raw.get("transactions", [])],
            properties=[Property.from_dict(r) for r in raw.get("properties", [])],
            units=[Unit.from_dict(r) for r in raw.get("units", [])],
            leases=[Lease.from_dict(r) for r in raw.get("leases", [])],
            tenants=[Tenant.from_dict(r) for r in raw.get("tenants", [])],
            maintenance_requests=[
                MaintenanceRequest.from_dict(r) for r in raw.get("maintenance_requests", [])
            ],
        )
    except (KeyError, ValueError, TypeError) as e:
        raise ConfigError(f"Data snapshot {path} has an invalid record: {e}") from e

    logger.info(
        f"Loaded data snapshot {path}: {len(source._transactions)} transactions, "
        f"{len(source._properties)} properties"
    )
    return source
