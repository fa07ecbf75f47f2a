"""
End-to-end tests over the file-backed record store

Tests verify:
- Scheduled jobs survive a restart and run from scheduler ticks
- Concurrent ticks produce a single run per due job
- Reconciliation periods persisted and resumed by a second matcher
- The CLI reading state written by the pipeline
"""

import json
import threading
from datetime import timedelta
from pathlib import Path

import pytest

from report_engine.analytics import AnalyticsAggregator
from report_engine.cli import run
from report_engine.config import EngineConfig
from report_engine.models import (
    Frequency,
    OutputFormat,
    ReconciliationStatus,
    Recipient,
    ReportSettings,
    ReportType,
    RunStatus,
    ScheduleConfig,
)
from report_engine.pipeline import (
    JobDefinition,
    ReportPipeline,
    ReportScheduler,
    create_scheduled_job,
    get_scheduled_job,
)
from report_engine.reconciliation import ReconciliationMatcher
from report_engine.report import FileRenderer, LogDispatcher
from report_engine.store import GENERATED_REPORTS, FileRecordStore
from utils.metrics import ReportMetrics

pytestmark = pytest.mark.integration


def build_pipeline(state_dir: Path, output_dir: Path, source, registry=None) -> ReportPipeline:
    return ReportPipeline(
        FileRecordStore(str(state_dir)),
        AnalyticsAggregator(source),
        FileRenderer(str(output_dir)),
        LogDispatcher(),
        collaborator_timeout=10.0,
        metrics=ReportMetrics(registry=registry) if registry is not None else None,
    )


def daily_job(store, now):
    return create_scheduled_job(
        store,
        JobDefinition(
            name="Owner Financials",
            report_type=ReportType.FINANCIAL,
            schedule=ScheduleConfig(Frequency.DAILY, "09:00"),
            settings=ReportSettings(formats=[OutputFormat.JSON, OutputFormat.CSV]),
            recipients=[Recipient("owner@example.com")],
        ),
        now=now,
    )


# ============================================================================
# Test Scheduled Reports
# ============================================================================

class TestScheduledReports:
    """Test the polling loop against persisted jobs"""

    def test_job_runs_after_restart(self, tmp_path, sample_source, fixed_now, registry):
        """Test a job created by one process is run by the next"""
        state, out = tmp_path / "state", tmp_path / "out"
        job = daily_job(FileRecordStore(str(state)), fixed_now)

        pipeline = build_pipeline(state, out, sample_source, registry)
        scheduler = ReportScheduler(pipeline, blocking=False)

        assert scheduler.tick(fixed_now) == []

        [report] = scheduler.tick(job.next_run + timedelta(minutes=1))

        assert report.status == RunStatus.SENT
        assert report.data["summary"]["total_revenue"] == 2200.0
        for path in report.artifacts.values():
            assert Path(path).exists()

        reopened = FileRecordStore(str(state))
        stored_job = get_scheduled_job(reopened, job.id)
        assert stored_job.last_run == job.next_run + timedelta(minutes=1)
        assert stored_job.next_run > stored_job.last_run
        [stored_run] = reopened.list(GENERATED_REPORTS)
        assert stored_run["status"] == "sent"
        assert stored_run["scheduled_report_id"] == job.id

    def test_concurrent_ticks_run_job_once(self, tmp_path, sample_source, fixed_now):
        """Test overlapping polls of one pipeline produce a single run"""
        state, out = tmp_path / "state", tmp_path / "out"
        job = daily_job(FileRecordStore(str(state)), fixed_now)
        pipeline = build_pipeline(state, out, sample_source)
        due_at = job.next_run + timedelta(minutes=1)

        results = []
        barrier = threading.Barrier(2)

        def poll():
            barrier.wait()
            results.extend(pipeline.process_due_jobs(due_at))

        threads = [threading.Thread(target=poll) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert len(results) == 1
        assert len(pipeline.store.list(GENERATED_REPORTS)) == 1


# ============================================================================
# Test Reconciliation
# ============================================================================

class TestPersistedReconciliation:
    """Test reconciliation periods stored on disk"""

    def test_second_matcher_resumes_period(self, tmp_path, sample_source, fixed_now):
        """Test a discrepancy opened by one matcher is resolved by another"""
        state = str(tmp_path / "state")
        first = ReconciliationMatcher(
            store=FileRecordStore(state), data_source=sample_source, clock=lambda: fixed_now
        )

        record = first.start_period("2024-02")
        first.apply_statement(record, 900.0)

        assert record.status == ReconciliationStatus.DISCREPANCY
        assert record.ledger_total == 1750.0

        second = ReconciliationMatcher(
            store=FileRecordStore(state), data_source=sample_source, clock=lambda: fixed_now
        )
        resumed = second.get(record.id)
        second.resolve_discrepancy(resumed, "Pending rent cleared after statement date")

        assert resumed.status == ReconciliationStatus.RECONCILED
        assert resumed.version == record.version + 1
        assert "Pending rent" in second.get(record.id).notes


# ============================================================================
# Test CLI Over Pipeline State
# ============================================================================

class TestCliOverState:
    """Test the CLI reads what the pipeline wrote"""

    def test_runs_listed_by_cli(self, tmp_path, sample_source, snapshot_file, fixed_now, capsys):
        state, out = tmp_path / "state", tmp_path / "out"
        job = daily_job(FileRecordStore(str(state)), fixed_now)
        [report] = build_pipeline(state, out, sample_source).process_due_jobs(
            job.next_run + timedelta(minutes=1)
        )

        config = EngineConfig(state_dir=str(state), output_dir=str(out))
        exit_code = run(
            ["--log-level", "WARNING", "--data", str(snapshot_file),
             "runs", "show", report.id, "--json"],
            config=config,
        )

        assert exit_code == 0
        shown = json.loads(capsys.readouterr().out)
        assert shown["id"] == report.id
        assert shown["status"] == "sent"
