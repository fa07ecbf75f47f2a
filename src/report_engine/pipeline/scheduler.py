"""
APScheduler-based polling loop for scheduled reports.

This module provides the ReportScheduler class, which polls the record store
at a fixed interval and hands due jobs to the report pipeline.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.interval import IntervalTrigger

from utils.metrics import ReportMetrics
from utils.tracing import trace_operation

from ..models import GeneratedReportRun, utc_now
from .runner import ReportPipeline

logger = logging.getLogger(__name__)

POLL_JOB_ID = "report-engine-poll"


class ReportScheduler:
    """
    Periodic driver for the report pipeline

    Each tick asks the pipeline to run every due job. Ticks never overlap,
    and a failing tick is logged without stopping the loop.
    """

    def __init__(
        self,
        pipeline: ReportPipeline,
        poll_interval: int = 60,
        blocking: bool = True,
        metrics: ReportMetrics | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the scheduler

        Args:
            pipeline: Pipeline that executes due jobs
            poll_interval: Seconds between ticks
            blocking: Use a BlockingScheduler (CLI) instead of a
                BackgroundScheduler (embedded)
            metrics: Optional report metrics
            clock: Source of the current instant
        """
        self.pipeline = pipeline
        self.poll_interval = poll_interval
        self.metrics = metrics
        self.clock = clock

        scheduler_cls = BlockingScheduler if blocking else BackgroundScheduler
        self.scheduler = scheduler_cls(timezone=UTC)

        self.scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=poll_interval, timezone=UTC),
            id=POLL_JOB_ID,
            name="Poll scheduled reports",
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(UTC),
            replace_existing=True,
        )

    def tick(self, now: datetime | None = None) -> list[GeneratedReportRun]:
        """
        Run one poll of due jobs

        Args:
            now: Poll instant (default: the scheduler clock)

        Returns:
            Runs produced by this tick; empty if the tick failed
        """
        now = now or self.clock()

        try:
            with trace_operation("scheduler_tick", tick_at=now.isoformat()):
                runs = self.pipeline.process_due_jobs(now)
        except Exception as e:
            logger.error(f"Scheduler tick failed: {e}", exc_info=True)
            if self.metrics:
                self.metrics.record_tick(success=False)
            return []

        if self.metrics:
            self.metrics.record_tick(success=True)

        if runs:
            logger.info(f"Scheduler tick produced {len(runs)} run(s)")
        return runs

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def start(self) -> None:
        """
        Start the scheduler

        With a BlockingScheduler this blocks the current thread until
        interrupted; use Ctrl+C to stop.
        """
        logger.info(f"Starting report scheduler, polling every {self.poll_interval}s")

        try:
            self.scheduler.start()
        except (KeyboardInterrupt, SystemExit):
            logger.info("Scheduler stopped by user")
            self.stop()

    def stop(self, wait: bool = True) -> None:
        """Stop the scheduler, waiting for an in-progress tick by default"""
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        logger.info("Scheduler stopped")

    def list_jobs(self) -> list[dict[str, Any]]:
        """
        List scheduler jobs

        Returns:
            List of job information dictionaries
        """
        return [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": (
                    job.next_run_time.isoformat()
                    if getattr(job, "next_run_time", None) else None
                ),
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]
