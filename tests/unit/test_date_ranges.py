"""
Unit tests for report window resolution
"""

from datetime import UTC, datetime, timedelta

import pytest

from report_engine.errors import ConfigError
from report_engine.models import DateRange, DateRangeSelector
from report_engine.pipeline import resolve_date_range

NOW = datetime(2024, 3, 15, 10, 0, tzinfo=UTC)
END_OF_DAY = timedelta(days=1) - timedelta(microseconds=1)


class TestResolveDateRange:
    """Test selector resolution against a run instant"""

    def test_last_month(self):
        """Test last_month covers the whole previous calendar month"""
        result = resolve_date_range("last_month", NOW)

        assert result.start == datetime(2024, 2, 1, tzinfo=UTC)
        assert result.end == datetime(2024, 2, 29, tzinfo=UTC) + END_OF_DAY

    def test_last_month_in_january(self):
        """Test last_month wraps to December of the previous year"""
        result = resolve_date_range(DateRangeSelector.LAST_MONTH, datetime(2024, 1, 10, tzinfo=UTC))

        assert result.start == datetime(2023, 12, 1, tzinfo=UTC)
        assert result.end == datetime(2023, 12, 31, tzinfo=UTC) + END_OF_DAY

    def test_last_quarter(self):
        """Test last_quarter in Q1 is Q4 of the previous year"""
        result = resolve_date_range("last_quarter", NOW)

        assert result.start == datetime(2023, 10, 1, tzinfo=UTC)
        assert result.end == datetime(2023, 12, 31, tzinfo=UTC) + END_OF_DAY

    def test_last_quarter_mid_year(self):
        result = resolve_date_range("last_quarter", datetime(2024, 8, 1, tzinfo=UTC))

        assert result.start == datetime(2024, 4, 1, tzinfo=UTC)
        assert result.end == datetime(2024, 6, 30, tzinfo=UTC) + END_OF_DAY

    def test_last_year(self):
        result = resolve_date_range("last_year", NOW)

        assert result == DateRange(
            datetime(2023, 1, 1, tzinfo=UTC),
            datetime(2023, 12, 31, tzinfo=UTC) + END_OF_DAY,
        )

    def test_ytd_ends_at_now(self):
        result = resolve_date_range("ytd", NOW)

        assert result.start == datetime(2024, 1, 1, tzinfo=UTC)
        assert result.end == NOW

    @pytest.mark.parametrize("selector,days", [("last_7_days", 7), ("last_30_days", 30)])
    def test_rolling_windows(self, selector, days):
        result = resolve_date_range(selector, NOW)

        assert result.end == NOW
        assert result.end - result.start == timedelta(days=days)

    def test_unknown_selector(self):
        with pytest.raises(ConfigError, match="Unknown date range selector"):
            resolve_date_range("last_decade", NOW)

    def test_naive_now(self):
        with pytest.raises(ConfigError):
            resolve_date_range("last_month", datetime(2024, 3, 15))


class TestDateRange:
    """Test DateRange behaviour used by growth comparisons"""

    def test_previous_is_adjacent_and_equal_length(self):
        current = resolve_date_range("last_month", NOW)

        previous = current.previous()

        assert previous.length == current.length
        assert previous.end + timedelta(microseconds=1) == current.start

    def test_end_before_start_rejected(self):
        with pytest.raises(ConfigError):
            DateRange(NOW, NOW - timedelta(days=1))

    def test_naive_bounds_rejected(self):
        with pytest.raises(ConfigError):
            DateRange(datetime(2024, 1, 1), datetime(2024, 2, 1))
