"""
Financial report: income, expenses, growth, margins and rent collection.

The gross margin only deducts direct property costs (maintenance and
repairs); the profit margin deducts every expense.
"""

from collections import defaultdict

from ..datasource import DataSource, TransactionStatus, TransactionType
from ..datasource.records import DIRECT_COST_CATEGORIES, RENT_CATEGORIES
from ..models import DateRange, ReportFilters
from .helpers import growth_rate, mean, month_key, percentage, round_money, round_rate
from .ledger import effective_transactions, split_totals
from .payloads import FinancialPayload, MonthlyFinancials

_COLLECTED_STATUSES = (TransactionStatus.COMPLETED, TransactionStatus.RECONCILED)


def financial_metrics(
    source: DataSource,
    date_range: DateRange,
    filters: ReportFilters | None = None,
) -> FinancialPayload:
    """
    Compute financial metrics for a date range

    Growth rates compare against the equal-length period immediately
    preceding the range.

    Args:
        source: Data source to read transactions from
        date_range: Reporting window
        filters: Optional report filters

    Returns:
        FinancialPayload
    """
    current = effective_transactions(source, date_range, filters)
    previous = effective_transactions(source, date_range.previous(), filters)

    revenue, expenses = split_totals(current)
    prev_revenue, prev_expenses = split_totals(previous)
    net_income = revenue - expenses
    prev_net_income = prev_revenue - prev_expenses

    monthly: dict[str, list[float]] = defaultdict(lambda: [0.0, 0.0])
    revenue_by_category: dict[str, float] = defaultdict(float)
    expenses_by_category: dict[str, float] = defaultdict(float)

    for t in current:
        bucket = monthly[month_key(t.date)]
        if t.type == TransactionType.INCOME:
            bucket[0] += t.amount
            revenue_by_category[t.category] += t.amount
        else:
            bucket[1] += t.amount
            expenses_by_category[t.category] += t.amount

    # Rent due is every rent income transaction; collected ones have cleared
    rent = [
        t for t in current
        if t.type == TransactionType.INCOME and t.category in RENT_CATEGORIES
    ]
    due = sum(t.amount for t in rent)
    collected_rent = [t.amount for t in rent if t.status in _COLLECTED_STATUSES]
    collected = sum(collected_rent)
    direct_costs = sum(
        v for k, v in expenses_by_category.items() if k in DIRECT_COST_CATEGORIES
    )

    return FinancialPayload(
        total_revenue=round_money(revenue),
        total_expenses=round_money(expenses),
        net_income=round_money(net_income),
        revenue_growth=round_rate(growth_rate(revenue, prev_revenue)),
        expense_growth=round_rate(growth_rate(expenses, prev_expenses)),
        net_income_growth=round_rate(growth_rate(net_income, prev_net_income)),
        profit_margin=round_rate(percentage(net_income, revenue)),
        gross_margin=round_rate(percentage(revenue - direct_costs, revenue)),
        operating_expense_ratio=round_rate(percentage(expenses, revenue)),
        collection_rate=round_rate(percentage(collected, due)),
        outstanding_rent=round_money(due - collected),
        average_rent_collection=round_money(mean(collected_rent)),
        transaction_count=len(current),
        monthly_breakdown=[
            MonthlyFinancials(
                month=key,
                revenue=round_money(values[0]),
                expenses=round_money(values[1]),
                net_income=round_money(values[0] - values[1]),
            )
            for key, values in sorted(monthly.items())
        ],
        revenue_by_category={k: round_money(v) for k, v in sorted(revenue_by_category.items())},
        expenses_by_category={k: round_money(v) for k, v in sorted(expenses_by_category.items())},
    )
