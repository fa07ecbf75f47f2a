"""
Analytics aggregator dispatching report types to their metric builders.
"""

import logging

from opentelemetry import trace

from utils.tracing import add_span_attributes, trace_operation

from ..config import OWNER_REVENUE_SHARE
from ..datasource import DataSource
from ..errors import AggregationError, ReportEngineError
from ..models import DateRange, ReportFilters, ReportType
from .financial import financial_metrics
from .maintenance import maintenance_metrics
from .payloads import ComprehensivePayload, MetricsPayload
from .portfolio import portfolio_metrics
from .tenant import tenant_metrics

logger = logging.getLogger(__name__)


class AnalyticsAggregator:
    """
    Computes report payloads from a read-only data source

    Aggregation never writes and never reads the wall clock, so two calls
    over an unchanged snapshot and range return equal payloads.
    """

    def __init__(self, data_source: DataSource, owner_share: float = OWNER_REVENUE_SHARE):
        """
        Initialize aggregator

        Args:
            data_source: Source of transactions and portfolio records
            owner_share: Owner share of revenue used for distributions
        """
        self.data_source = data_source
        self.owner_share = owner_share

    def aggregate(
        self,
        report_type: ReportType | str,
        date_range: DateRange,
        filters: ReportFilters | None = None,
    ) -> MetricsPayload:
        """
        Build the metrics payload for a report type

        Args:
            report_type: Report type to compute
            date_range: Reporting window
            filters: Optional report filters

        Returns:
            Payload matching the report type

        Raises:
            AggregationError: On data source failure or inconsistent data
        """
        try:
            report_type = ReportType(report_type)
        except ValueError as e:
            raise AggregationError(f"Unknown report type {report_type!r}") from e

        filters = filters or ReportFilters()

        with trace_operation(
            "aggregate_report",
            kind=trace.SpanKind.INTERNAL,
            report_type=report_type.value,
            start=date_range.start.isoformat(),
            end=date_range.end.isoformat(),
        ):
            try:
                payload = self._build(report_type, date_range, filters)
            except ReportEngineError:
                raise
            except Exception as e:
                logger.error(f"Data source failure during {report_type.value} aggregation: {e}")
                raise AggregationError(
                    f"Failed to aggregate {report_type.value} report: {e}"
                ) from e

            add_span_attributes(summary_fields=len(payload.summary()))

        logger.debug(
            f"Aggregated {report_type.value} report for "
            f"{date_range.start.isoformat()} - {date_range.end.isoformat()}"
        )
        return payload

    def _build(
        self,
        report_type: ReportType,
        date_range: DateRange,
        filters: ReportFilters,
    ) -> MetricsPayload:
        source = self.data_source

        if report_type == ReportType.FINANCIAL:
            return financial_metrics(source, date_range, filters)
        if report_type == ReportType.PORTFOLIO:
            return portfolio_metrics(source, date_range, filters, self.owner_share)
        if report_type == ReportType.TENANT:
            return tenant_metrics(source, date_range, filters)
        if report_type == ReportType.MAINTENANCE:
            return maintenance_metrics(source, date_range, filters)

        return ComprehensivePayload(
            financial=financial_metrics(source, date_range, filters),
            portfolio=portfolio_metrics(source, date_range, filters, self.owner_share),
            tenant=tenant_metrics(source, date_range, filters),
            maintenance=maintenance_metrics(source, date_range, filters),
        )
