"""
Metrics for report generation and scheduling.

Tracks report runs by type and outcome, run durations, artifact sizes and
the scheduler's polling activity.
"""

import logging
import time

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
)

logger = logging.getLogger(__name__)


class ReportMetrics:
    """
    Metrics for report runs and the scheduling loop
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize report metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.report_runs_total = Counter(
            "report_runs_total",
            "Total number of report runs by outcome",
            ["report_type", "status", "trigger"],
            registry=self.registry,
        )

        self.report_duration_seconds = Histogram(
            "report_run_duration_seconds",
            "Duration of report runs in seconds",
            ["report_type"],
            buckets=(0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600),
            registry=self.registry,
        )

        self.report_artifact_bytes = Counter(
            "report_artifact_bytes_total",
            "Total bytes of rendered report artifacts",
            ["report_type"],
            registry=self.registry,
        )

        self.jobs_due = Gauge(
            "report_jobs_due",
            "Scheduled report jobs found due at the last tick",
            registry=self.registry,
        )

        self.scheduler_ticks_total = Counter(
            "report_scheduler_ticks_total",
            "Total scheduler polling ticks",
            ["outcome"],
            registry=self.registry,
        )

        self.last_tick_timestamp = Gauge(
            "report_scheduler_last_tick_timestamp",
            "Timestamp of the last scheduler tick",
            registry=self.registry,
        )

    def record_run(
        self,
        report_type: str,
        status: str,
        duration: float,
        scheduled: bool,
        byte_size: int = 0,
    ) -> None:
        """
        Record a finished report run

        Args:
            report_type: Report type value
            status: Final run status value
            duration: Run duration in seconds
            scheduled: Whether the run came from a scheduled job
            byte_size: Total artifact size in bytes
        """
        trigger = "scheduled" if scheduled else "manual"

        self.report_runs_total.labels(
            report_type=report_type,
            status=status,
            trigger=trigger,
        ).inc()

        self.report_duration_seconds.labels(report_type=report_type).observe(duration)

        if byte_size:
            self.report_artifact_bytes.labels(report_type=report_type).inc(byte_size)

        logger.debug(
            f"Recorded report run: type={report_type}, status={status}, "
            f"trigger={trigger}, duration={duration:.2f}s"
        )

    def record_jobs_due(self, count: int) -> None:
        self.jobs_due.set(count)

    def record_tick(self, success: bool = True) -> None:
        self.scheduler_ticks_total.labels(outcome="success" if success else "failed").inc()
        self.last_tick_timestamp.set(time.time())
