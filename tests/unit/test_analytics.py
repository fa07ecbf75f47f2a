"""
Unit tests for report_engine.analytics

Expected values are computed by hand from the conftest snapshot for
February 2024.
"""

from datetime import UTC, datetime
from unittest.mock import Mock

import pytest

from report_engine.analytics import (
    AnalyticsAggregator,
    ComprehensivePayload,
    FinancialPayload,
    growth_rate,
    mean,
    percentage,
    round_money,
    safe_divide,
)
from report_engine.analytics.helpers import month_keys, round_rate
from report_engine.analytics.tenant import duration_bucket
from report_engine.datasource import InMemoryDataSource, Transaction, TransactionType
from report_engine.errors import AggregationError
from report_engine.models import DateRange, ReportFilters, ReportType

FEBRUARY = DateRange(
    datetime(2024, 2, 1, tzinfo=UTC),
    datetime(2024, 2, 29, 23, 59, 59, 999999, tzinfo=UTC),
)


@pytest.fixture
def aggregator(sample_source):
    return AnalyticsAggregator(sample_source)


# ============================================================================
# Test Helpers
# ============================================================================

class TestHelpers:
    """Test zero-safe numeric helpers"""

    def test_safe_divide_zero_denominator(self):
        assert safe_divide(10, 0) == 0

    def test_percentage(self):
        assert percentage(1, 4) == 25.0
        assert percentage(5, 0) == 0

    def test_growth_rate(self):
        assert growth_rate(150, 100) == 50.0
        assert growth_rate(50, 100) == -50.0
        assert growth_rate(100, 0) == 0

    def test_mean_of_nothing(self):
        assert mean([]) == 0

    def test_round_money_folds_negative_zero(self):
        assert str(round_money(-0.001)) == "0.0"
        assert round_money(float("inf")) == 0.0

    def test_round_rate_non_finite(self):
        assert round_rate(float("nan")) == 0.0

    def test_month_keys_cross_year(self):
        keys = month_keys(datetime(2023, 11, 15, tzinfo=UTC), datetime(2024, 2, 1, tzinfo=UTC))

        assert keys == ["2023-11", "2023-12", "2024-01", "2024-02"]

    @pytest.mark.parametrize("months,label", [
        (0, "0-6 months"),
        (5.9, "0-6 months"),
        (6, "6-12 months"),
        (23.5, "1-2 years"),
        (30, "2-3 years"),
        (48, "3+ years"),
    ])
    def test_duration_bucket(self, months, label):
        assert duration_bucket(months) == label


# ============================================================================
# Test Financial Report
# ============================================================================

class TestFinancialMetrics:
    """Test financial aggregation"""

    def test_totals_exclude_cancelled(self, aggregator):
        payload = aggregator.aggregate("financial", FEBRUARY)

        assert isinstance(payload, FinancialPayload)
        assert payload.total_revenue == 2200.0
        assert payload.total_expenses == 450.0
        assert payload.net_income == 1750.0
        assert payload.transaction_count == 5

    def test_growth_against_preceding_window(self, aggregator):
        payload = aggregator.aggregate("financial", FEBRUARY)

        assert payload.revenue_growth == 120.0
        assert payload.expense_growth == 0
        assert payload.net_income_growth == 75.0

    def test_margins(self, aggregator):
        payload = aggregator.aggregate("financial", FEBRUARY)

        assert payload.gross_margin == 86.36
        assert payload.profit_margin == 79.55
        assert payload.operating_expense_ratio == 20.45

    def test_gross_margin_ignores_overheads(self, aggregator):
        payload = aggregator.aggregate(
            "financial", FEBRUARY, ReportFilters(property_ids=["p2"])
        )

        assert payload.total_expenses == 150.0
        assert payload.gross_margin == 100.0
        assert payload.profit_margin == 83.33

    def test_collection(self, aggregator):
        payload = aggregator.aggregate("financial", FEBRUARY)

        assert payload.collection_rate == 57.14
        assert payload.outstanding_rent == 900.0
        assert payload.average_rent_collection == 1200.0

    def test_breakdowns(self, aggregator):
        details = aggregator.aggregate("financial", FEBRUARY).details()

        assert details["monthly_breakdown"] == [
            {"month": "2024-02", "revenue": 2200.0, "expenses": 450.0, "net_income": 1750.0}
        ]
        assert details["revenue_by_category"] == {"parking": 100.0, "rent": 2100.0}
        assert details["expenses_by_category"] == {"maintenance": 300.0, "utilities": 150.0}

    def test_filters(self, aggregator):
        filters = ReportFilters(property_ids=["p2"])

        payload = aggregator.aggregate("financial", FEBRUARY, filters)

        assert payload.total_revenue == 900.0
        assert payload.total_expenses == 150.0

    def test_amount_filters(self, aggregator):
        filters = ReportFilters(min_amount=200, max_amount=1000)

        payload = aggregator.aggregate("financial", FEBRUARY, filters)

        assert payload.total_revenue == 900.0
        assert payload.total_expenses == 300.0

    def test_empty_range_is_all_zero(self):
        payload = AnalyticsAggregator(InMemoryDataSource()).aggregate("financial", FEBRUARY)

        assert all(value == 0 for value in payload.summary().values())
        assert payload.details()["monthly_breakdown"] == []


# ============================================================================
# Test Portfolio Report
# ============================================================================

class TestPortfolioMetrics:
    """Test portfolio aggregation"""

    def test_rollups(self, aggregator):
        summary = aggregator.aggregate("portfolio", FEBRUARY).summary()

        assert summary["total_properties"] == 2
        assert summary["total_units"] == 3
        assert summary["occupied_units"] == 2
        assert summary["occupancy_rate"] == 66.67
        assert summary["total_rent_roll"] == 2100.0
        assert summary["portfolio_roi"] == 79.55
        assert summary["owner_distribution"] == 1870.0
        assert summary["management_fees"] == 330.0
        assert summary["total_portfolio_value"] == 800000.0

    def test_per_property(self, aggregator):
        payload = aggregator.aggregate("portfolio", FEBRUARY)
        by_id = {p.property_id: p for p in payload.properties}

        assert by_id["p1"].occupancy_rate == 50.0
        assert by_id["p1"].revenue == 1300.0
        assert by_id["p1"].roi == 76.92
        assert by_id["p1"].maintenance_costs == 350.0
        assert by_id["p2"].occupancy_rate == 100.0
        assert by_id["p2"].roi == 83.33

    def test_rankings(self, aggregator):
        details = aggregator.aggregate("portfolio", FEBRUARY).details()

        assert [p["property_id"] for p in details["top_performers"]] == ["p2", "p1"]
        assert [p["property_id"] for p in details["bottom_performers"]] == ["p1", "p2"]

    def test_custom_owner_share(self, sample_source):
        summary = AnalyticsAggregator(sample_source, owner_share=0.8).aggregate(
            "portfolio", FEBRUARY
        ).summary()

        assert summary["owner_distribution"] == 1760.0
        assert summary["management_fees"] == 440.0


# ============================================================================
# Test Tenant and Maintenance Reports
# ============================================================================

class TestTenantMetrics:
    """Test tenant aggregation"""

    def test_counts(self, aggregator):
        summary = aggregator.aggregate("tenant", FEBRUARY).summary()

        assert summary["total_tenants"] == 3
        assert summary["active_tenants"] == 2
        assert summary["new_tenants"] == 0
        assert summary["departed_tenants"] == 1
        assert summary["renewal_rate"] == 0
        assert summary["average_rent"] == 1050.0
        assert summary["average_stay_months"] == 12.17
        assert summary["maintenance_requests_per_tenant"] == 1.5

    def test_distributions(self, aggregator):
        details = aggregator.aggregate("tenant", FEBRUARY).details()

        assert details["by_unit_type"] == {"2br": 1, "studio": 1}
        assert details["by_tenancy_duration"] == {
            "0-6 months": 1,
            "6-12 months": 0,
            "1-2 years": 1,
            "2-3 years": 0,
            "3+ years": 0,
        }


class TestMaintenanceMetrics:
    """Test maintenance aggregation"""

    def test_summary(self, aggregator):
        summary = aggregator.aggregate("maintenance", FEBRUARY).summary()

        assert summary["total_requests"] == 3
        assert summary["completed_requests"] == 1
        assert summary["pending_requests"] == 1
        assert summary["in_progress_requests"] == 1
        assert summary["completion_rate"] == 33.33
        assert summary["average_resolution_days"] == 2.0
        assert summary["total_costs"] == 350.0
        assert summary["average_cost_per_request"] == 116.67

    def test_details(self, aggregator):
        details = aggregator.aggregate("maintenance", FEBRUARY).details()

        assert details["by_category"] == {"electrical": 1, "plumbing": 2}
        assert details["by_priority"] == {"high": 1, "low": 1, "medium": 1}
        assert details["top_issues"][0] == {"category": "plumbing", "count": 2, "average_cost": 175.0}
        assert [t["month"] for t in details["monthly_trends"]] == ["2024-02"]

    def test_resolution_only_counts_completed(self, aggregator):
        """Test open requests never contribute to resolution time"""
        trends = aggregator.aggregate("maintenance", FEBRUARY).details()["monthly_trends"]

        assert trends[0]["average_resolution_days"] == 2.0


# ============================================================================
# Test Aggregator
# ============================================================================

class TestAnalyticsAggregator:
    """Test dispatch and error handling"""

    def test_comprehensive_combines_sections(self, aggregator):
        payload = aggregator.aggregate(ReportType.COMPREHENSIVE, FEBRUARY)

        assert isinstance(payload, ComprehensivePayload)
        assert payload.summary()["total_revenue"] == 2200.0
        assert set(payload.details()) == {"financial", "portfolio", "tenant", "maintenance"}

    def test_idempotent(self, aggregator):
        first = aggregator.aggregate("comprehensive", FEBRUARY)
        second = aggregator.aggregate("comprehensive", FEBRUARY)

        assert first == second

    def test_unknown_report_type(self, aggregator):
        with pytest.raises(AggregationError, match="Unknown report type"):
            aggregator.aggregate("weekly_digest", FEBRUARY)

    def test_data_source_failure_wrapped(self):
        source = Mock()
        source.transactions.side_effect = ConnectionError("ledger offline")

        with pytest.raises(AggregationError, match="ledger offline"):
            AnalyticsAggregator(source).aggregate("financial", FEBRUARY)

    def test_negative_amount_rejected(self):
        bad = Transaction(
            id="bad",
            date=datetime(2024, 2, 3, tzinfo=UTC),
            amount=-10.0,
            type=TransactionType.INCOME,
            category="rent",
        )

        with pytest.raises(AggregationError, match="invalid amount"):
            AnalyticsAggregator(InMemoryDataSource([bad])).aggregate("financial", FEBRUARY)
