"""
Data source module

Read-only access to transactions, properties, units, leases, tenants and
maintenance requests.
"""

from .base import DataSource
from .memory import InMemoryDataSource, load_snapshot
from .records import (
    Lease,
    LeaseStatus,
    MaintenanceRequest,
    MaintenanceStatus,
    Property,
    Tenant,
    Transaction,
    TransactionStatus,
    TransactionType,
    Unit,
)

__all__ = [
    'DataSource',
    'InMemoryDataSource',
    'Lease',
    'LeaseStatus',
    'MaintenanceRequest',
    'MaintenanceStatus',
    'Property',
    'Tenant',
    'Transaction',
    'TransactionStatus',
    'TransactionType',
    'Unit',
    'load_snapshot',
]
