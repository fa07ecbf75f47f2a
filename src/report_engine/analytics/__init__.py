"""
Analytics module

Derives financial, portfolio, tenant and maintenance metrics from raw
ledger records for a date range.
"""

from .aggregator import AnalyticsAggregator
from .helpers import growth_rate, mean, month_key, percentage, round_money, safe_divide
from .payloads import (
    ComprehensivePayload,
    FinancialPayload,
    MaintenancePayload,
    MetricsPayload,
    PortfolioPayload,
    PropertyPerformance,
    TenantPayload,
)

__all__ = [
    'AnalyticsAggregator',
    'ComprehensivePayload',
    'FinancialPayload',
    'MaintenancePayload',
    'MetricsPayload',
    'PortfolioPayload',
    'PropertyPerformance',
    'TenantPayload',
    'growth_rate',
    'mean',
    'month_key',
    'percentage',
    'round_money',
    'safe_divide',
]
