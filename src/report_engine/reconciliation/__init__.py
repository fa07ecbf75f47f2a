"""
Reconciliation module

Checks the internal ledger of a calendar month against an external statement
and tracks each period through pending, discrepancy, disputed and reconciled.
"""

from .matcher import ReconciliationMatcher, check_partition, period_range
from .statement import (
    MatchResult,
    ReferenceAmountMatcher,
    StatementEntry,
    StatementMatcher,
    load_statement_csv,
    statement_total,
)

__all__ = [
    'MatchResult',
    'ReconciliationMatcher',
    'ReferenceAmountMatcher',
    'StatementEntry',
    'StatementMatcher',
    'check_partition',
    'load_statement_csv',
    'period_range',
    'statement_total',
]
