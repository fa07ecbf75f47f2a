"""
Prometheus metrics for report runs and reconciliation

Usage:
    from utils.metrics import initialize_metrics

    metrics = initialize_metrics(port=9091)
    metrics["reports"].record_run("financial", "sent", duration=2.4, scheduled=True)
    metrics["reconciliation"].record_operation(
        "apply_statement", "discrepancy", "2024-03", difference=500.0
    )
"""

import logging
from collections.abc import Callable
from typing import Any, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

from .publisher import ApplicationInfo, MetricsPublisher
from .reconciliation import ReconciliationMetrics
from .reports import ReportMetrics

logger = logging.getLogger(__name__)

M = TypeVar("M")


def get_or_create_metric(
    metric_factory: Callable[[], M],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> M:
    """
    Build a module-level metric, reusing the registered one on re-import

    Args:
        metric_factory: Zero-argument callable constructing the metric
        metric_name: Registered name to look up when construction collides
        registry: Registry the factory registers into

    Returns:
        The new or previously registered metric
    """
    try:
        return metric_factory()
    except ValueError:
        # Duplicated timeseries; prometheus_client keeps no public lookup
        collector = registry._names_to_collectors.get(metric_name)
        if collector is None:
            raise
        return collector


def initialize_metrics(
    port: int | None = 9091,
    registry: CollectorRegistry | None = None,
) -> dict[str, Any]:
    """
    Build every metric group, exposing them over HTTP when a port is given

    Returns:
        {"publisher", "reports", "reconciliation", "app_info"} mapping
    """
    publisher = MetricsPublisher(port=port or 0, registry=registry)
    if port:
        publisher.start()
    else:
        logger.debug("Metrics HTTP endpoint disabled")

    return {
        "publisher": publisher,
        "reports": ReportMetrics(registry=registry),
        "reconciliation": ReconciliationMetrics(registry=registry),
        "app_info": ApplicationInfo(registry=registry),
    }


__all__ = [
    "ApplicationInfo",
    "MetricsPublisher",
    "ReconciliationMetrics",
    "ReportMetrics",
    "get_or_create_metric",
    "initialize_metrics",
]
