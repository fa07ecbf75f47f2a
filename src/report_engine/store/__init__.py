"""
Record store module

Persistence for scheduled report jobs, generated report runs and
reconciliation records with atomic compare-and-swap updates.
"""

from .base import (
    COLLECTIONS,
    GENERATED_REPORTS,
    RECONCILIATIONS,
    SCHEDULED_REPORTS,
    RecordStore,
)
from .file import FileRecordStore
from .memory import InMemoryRecordStore

__all__ = [
    'COLLECTIONS',
    'GENERATED_REPORTS',
    'RECONCILIATIONS',
    'SCHEDULED_REPORTS',
    'FileRecordStore',
    'InMemoryRecordStore',
    'RecordStore',
]
