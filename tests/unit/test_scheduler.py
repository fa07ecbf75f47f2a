"""
Unit tests for report_engine.pipeline.scheduler
"""

from unittest.mock import Mock, patch

from report_engine.pipeline import ReportScheduler
from report_engine.pipeline.scheduler import POLL_JOB_ID
from utils.metrics import ReportMetrics


class TestReportScheduler:
    """Test the polling loop"""

    def test_poll_job_registered(self):
        scheduler = ReportScheduler(Mock(), poll_interval=30, blocking=False)

        [job] = scheduler.list_jobs()

        assert job["id"] == POLL_JOB_ID
        assert "0:00:30" in job["trigger"]
        assert not scheduler.running

    def test_tick_runs_due_jobs(self, fixed_now, registry):
        pipeline = Mock()
        pipeline.process_due_jobs.return_value = ["run"]
        scheduler = ReportScheduler(
            pipeline, blocking=False, metrics=ReportMetrics(registry=registry),
            clock=lambda: fixed_now,
        )

        assert scheduler.tick() == ["run"]

        pipeline.process_due_jobs.assert_called_once_with(fixed_now)
        assert registry.get_sample_value(
            "report_scheduler_ticks_total", {"outcome": "success"}
        ) == 1.0

    def test_failed_tick_does_not_raise(self, fixed_now, registry):
        pipeline = Mock()
        pipeline.process_due_jobs.side_effect = ConnectionError("store unavailable")
        scheduler = ReportScheduler(
            pipeline, blocking=False, metrics=ReportMetrics(registry=registry)
        )

        assert scheduler.tick(fixed_now) == []
        assert registry.get_sample_value(
            "report_scheduler_ticks_total", {"outcome": "failed"}
        ) == 1.0

    def test_background_start_and_stop(self):
        pipeline = Mock()
        pipeline.process_due_jobs.return_value = []
        scheduler = ReportScheduler(pipeline, poll_interval=3600, blocking=False)

        scheduler.start()
        try:
            assert scheduler.running
        finally:
            scheduler.stop()

        assert not scheduler.running

    def test_blocking_start_interrupted(self):
        with patch("report_engine.pipeline.scheduler.BlockingScheduler") as scheduler_cls:
            backend = scheduler_cls.return_value
            backend.start.side_effect = KeyboardInterrupt
            backend.running = True

            ReportScheduler(Mock()).start()

        backend.shutdown.assert_called_once_with(wait=True)
