"""
Property report and reconciliation engine

Computes run times for recurring reports, generates report runs from ledger
and property data, and reconciles monthly ledgers against bank statements.
"""

from .analytics import AnalyticsAggregator
from .config import EngineConfig
from .errors import (
    AggregationError,
    ConcurrentUpdateError,
    ConfigError,
    DispatchError,
    NotFoundError,
    ReconciliationError,
    RenderError,
    ReportEngineError,
    StateTransitionError,
)
from .pipeline import ReportPipeline, ReportScheduler
from .reconciliation import ReconciliationMatcher
from .schedule import next_run

__version__ = "1.0.0"

__all__ = [
    'AggregationError',
    'AnalyticsAggregator',
    'ConcurrentUpdateError',
    'ConfigError',
    'DispatchError',
    'EngineConfig',
    'NotFoundError',
    'ReconciliationError',
    'ReconciliationMatcher',
    'RenderError',
    'ReportEngineError',
    'ReportPipeline',
    'ReportScheduler',
    'StateTransitionError',
    'next_run',
]
