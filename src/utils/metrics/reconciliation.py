"""
Metrics for ledger-versus-statement reconciliation.

Tracks reconciliation operations by resulting status, the latest absolute
difference per period and the number of per-transaction discrepancies found.
"""

import logging

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
)

logger = logging.getLogger(__name__)


class ReconciliationMetrics:
    """
    Metrics for reconciliation periods
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize reconciliation metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.operations_total = Counter(
            "reconciliation_operations_total",
            "Reconciliation operations by operation and resulting status",
            ["operation", "status"],
            registry=self.registry,
        )

        self.absolute_difference = Gauge(
            "reconciliation_absolute_difference",
            "Absolute ledger minus statement difference of the last operation",
            ["period"],
            registry=self.registry,
        )

        self.discrepancies_total = Counter(
            "reconciliation_discrepancies_total",
            "Per-transaction discrepancies detected",
            ["period"],
            registry=self.registry,
        )

    def record_operation(
        self,
        operation: str,
        status: str,
        period: str,
        difference: float,
        discrepancies: int = 0,
    ) -> None:
        """
        Record a reconciliation state change

        Args:
            operation: Operation name (start, apply_statement, resolve, ...)
            status: Resulting status value
            period: Period key "YYYY-MM"
            difference: Ledger minus statement difference
            discrepancies: Number of new per-transaction discrepancies
        """
        self.operations_total.labels(operation=operation, status=status).inc()
        self.absolute_difference.labels(period=period).set(abs(difference))

        if discrepancies:
            self.discrepancies_total.labels(period=period).inc(discrepancies)
            logger.warning(
                f"Reconciliation discrepancies detected: period={period}, "
                f"count={discrepancies}, difference={difference:.2f}"
            )
