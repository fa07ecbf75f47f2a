"""
Pytest configuration and fixtures for report engine tests.
Provides a small property portfolio snapshot, record stores and a fixed clock.
"""

import copy
import json
import logging
from datetime import UTC, datetime
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from report_engine.datasource import (
    InMemoryDataSource,
    Lease,
    MaintenanceRequest,
    Property,
    Tenant,
    Transaction,
    Unit,
)
from report_engine.store import FileRecordStore, InMemoryRecordStore


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# February 2024 is "last month" relative to FIXED_NOW; one January
# transaction falls in the preceding equal-length window.
SNAPSHOT = {
    "properties": [
        {"id": "p1", "name": "Sunrise Apartments", "value": 500000},
        {"id": "p2", "name": "Harbor View", "value": 300000},
    ],
    "units": [
        {"id": "u1", "property_id": "p1", "unit_type": "2br"},
        {"id": "u2", "property_id": "p1", "unit_type": "1br"},
        {"id": "u3", "property_id": "p2", "unit_type": "studio"},
    ],
    "tenants": [
        {"id": "t1", "name": "Alex Moyo"},
        {"id": "t2", "name": "Sam Dube"},
        {"id": "t3", "name": "Jordan Ncube"},
    ],
    "leases": [
        {"id": "l1", "property_id": "p1", "unit_id": "u1", "tenant_id": "t1",
         "rent_amount": 1200, "status": "active", "start_date": "2023-01-01T00:00:00Z"},
        {"id": "l2", "property_id": "p2", "unit_id": "u3", "tenant_id": "t2",
         "rent_amount": 900, "status": "active", "start_date": "2024-01-15T00:00:00Z"},
        {"id": "l3", "property_id": "p1", "unit_id": "u2", "tenant_id": "t3",
         "rent_amount": 1000, "status": "completed", "start_date": "2023-02-10T00:00:00Z",
         "end_date": "2024-02-10T00:00:00Z"},
    ],
    "transactions": [
        {"id": "tx0", "date": "2024-01-05T12:00:00Z", "amount": 1000, "type": "income",
         "category": "rent", "status": "completed", "property_id": "p1", "reference": "JAN-RENT"},
        {"id": "tx1", "date": "2024-02-01T09:00:00Z", "amount": 1200, "type": "income",
         "category": "rent", "status": "completed", "property_id": "p1", "reference": "FEB-RENT-1"},
        {"id": "tx2", "date": "2024-02-01T10:00:00Z", "amount": 900, "type": "income",
         "category": "rent", "status": "pending", "property_id": "p2", "reference": "FEB-RENT-2"},
        {"id": "tx3", "date": "2024-02-05T08:00:00Z", "amount": 300, "type": "expense",
         "category": "maintenance", "status": "completed", "property_id": "p1"},
        {"id": "tx4", "date": "2024-02-10T08:00:00Z", "amount": 150, "type": "expense",
         "category": "utilities", "status": "completed", "property_id": "p2"},
        {"id": "tx5", "date": "2024-02-12T08:00:00Z", "amount": 500, "type": "income",
         "category": "rent", "status": "cancelled", "property_id": "p1"},
        {"id": "tx6", "date": "2024-02-20T08:00:00Z", "amount": 100, "type": "income",
         "category": "parking", "status": "reconciled", "property_id": "p1"},
    ],
    "maintenance_requests": [
        {"id": "m1", "property_id": "p1", "category": "plumbing", "priority": "high",
         "status": "completed", "created_at": "2024-02-02T00:00:00Z",
         "completed_at": "2024-02-04T00:00:00Z", "cost": 250},
        {"id": "m2", "property_id": "p2", "category": "electrical", "priority": "low",
         "status": "pending", "created_at": "2024-02-15T00:00:00Z", "cost": 0},
        {"id": "m3", "property_id": "p1", "category": "plumbing", "priority": "medium",
         "status": "in_progress", "created_at": "2024-02-20T00:00:00Z", "cost": 100},
    ],
}

FIXED_NOW = datetime(2024, 3, 15, 10, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI reconfigures the root logger; put the test runner's handlers back"""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def build_source(data: dict) -> InMemoryDataSource:
    return InMemoryDataSource(
        transactions=[Transaction.from_dict(r) for r in data.get("transactions", [])],
        properties=[Property.from_dict(r) for r in data.get("properties", [])],
        units=[Unit.from_dict(r) for r in data.get("units", [])],
        leases=[Lease.from_dict(r) for r in data.get("leases", [])],
        tenants=[Tenant.from_dict(r) for r in data.get("tenants", [])],
        maintenance_requests=[
            MaintenanceRequest.from_dict(r) for r in data.get("maintenance_requests", [])
        ],
    )


@pytest.fixture
def fixed_now() -> datetime:
    """Run instant used across tests: 2024-03-15T10:00Z."""
    return FIXED_NOW


@pytest.fixture
def snapshot_data() -> dict:
    return copy.deepcopy(SNAPSHOT)


@pytest.fixture
def sample_source(snapshot_data: dict) -> InMemoryDataSource:
    return build_source(snapshot_data)


@pytest.fixture
def snapshot_file(tmp_path: Path, snapshot_data: dict) -> Path:
    """Snapshot written to a JSON file, as passed to the CLI with --data."""
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(snapshot_data))
    return path


@pytest.fixture
def memory_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def file_store(tmp_path: Path) -> FileRecordStore:
    return FileRecordStore(str(tmp_path / "state"))


@pytest.fixture
def registry() -> CollectorRegistry:
    """Fresh Prometheus registry so metric names never collide between tests."""
    return CollectorRegistry()
