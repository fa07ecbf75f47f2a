"""
Property-based tests for report aggregation.

Tests properties related to:
- Finite, zero-safe numeric helpers
- Revenue and expense totals over arbitrary ledgers
- Aggregation idempotence
"""

import math
from datetime import UTC, datetime, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from report_engine.analytics import AnalyticsAggregator, growth_rate, percentage, safe_divide
from report_engine.analytics.helpers import month_keys, round_money
from report_engine.datasource import (
    InMemoryDataSource,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from report_engine.models import DateRange, ReportType

RANGE = DateRange(
    datetime(2024, 1, 1, tzinfo=UTC),
    datetime(2024, 3, 31, 23, 59, 59, 999999, tzinfo=UTC),
)

any_floats = st.floats(allow_nan=True, allow_infinity=True)
amounts = st.floats(min_value=0, max_value=1_000_000, allow_nan=False, allow_infinity=False)


@st.composite
def transactions(draw, index: int = 0) -> Transaction:
    offset = draw(st.integers(min_value=-60, max_value=150))
    return Transaction(
        id=f"tx{index}",
        date=RANGE.start + timedelta(days=offset, hours=draw(st.integers(0, 23))),
        amount=draw(amounts),
        type=draw(st.sampled_from(list(TransactionType))),
        category=draw(st.sampled_from(["rent", "parking", "maintenance", "utilities"])),
        status=draw(st.sampled_from(list(TransactionStatus))),
        property_id=draw(st.sampled_from(["p1", "p2"])),
    )


@st.composite
def ledgers(draw) -> list[Transaction]:
    size = draw(st.integers(min_value=0, max_value=25))
    return [draw(transactions(index=i)) for i in range(size)]


# Property: helpers never produce NaN or infinity
@given(a=any_floats, b=any_floats)
def test_helpers_are_finite(a: float, b: float):
    """safe_divide, percentage and growth_rate should always return finite numbers."""
    for value in (safe_divide(a, b), percentage(a, b), growth_rate(a, b), round_money(a)):
        assert math.isfinite(value)


# Property: a zero denominator yields exactly zero
@given(a=any_floats)
def test_zero_denominator_is_zero(a: float):
    """Every ratio helper should return 0 for a zero denominator."""
    assert safe_divide(a, 0) == 0
    assert percentage(a, 0) == 0
    assert growth_rate(a, 0) == 0


# Property: month keys are contiguous and ordered
@given(
    start=st.datetimes(min_value=datetime(2000, 1, 1), max_value=datetime(2030, 1, 1)),
    days=st.integers(min_value=0, max_value=2000),
)
def test_month_keys_contiguous(start: datetime, days: int):
    """month_keys should list each month once, ascending, from start to end."""
    end = start + timedelta(days=days)

    keys = month_keys(start, end)

    assert keys[0] == f"{start.year:04d}-{start.month:02d}"
    assert keys[-1] == f"{end.year:04d}-{end.month:02d}"
    assert keys == sorted(set(keys))


# Property: revenue and expenses equal the sums of non-void in-range amounts
@given(ledger=ledgers())
@settings(max_examples=50)
def test_financial_totals_match_ledger(ledger: list[Transaction]):
    """Financial totals should be the rounded sums over the effective transactions."""
    counted = sorted(
        (t for t in ledger if not t.is_void and RANGE.contains(t.date)),
        key=lambda t: (t.date, t.id),
    )
    revenue = sum(t.amount for t in counted if t.type == TransactionType.INCOME)
    expenses = sum(t.amount for t in counted if t.type == TransactionType.EXPENSE)

    payload = AnalyticsAggregator(InMemoryDataSource(ledger)).aggregate(
        ReportType.FINANCIAL, RANGE
    )

    assert payload.total_revenue == round_money(revenue)
    assert payload.total_expenses == round_money(expenses)
    assert payload.net_income == round_money(revenue - expenses)
    assert payload.transaction_count == len(counted)


# Property: aggregating the same inputs twice gives the same payload
@given(ledger=ledgers(), report_type=st.sampled_from(list(ReportType)))
@settings(max_examples=50)
def test_aggregation_is_idempotent(ledger: list[Transaction], report_type: ReportType):
    """Aggregation should be a pure function of the snapshot and range."""
    aggregator = AnalyticsAggregator(InMemoryDataSource(ledger))

    first = aggregator.aggregate(report_type, RANGE)
    second = aggregator.aggregate(report_type, RANGE)

    assert first == second
