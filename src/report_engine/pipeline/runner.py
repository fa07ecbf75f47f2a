"""
Report generation pipeline.

A run moves through generating -> completed -> sent (or completed alone when
there are no recipients); any failing stage moves it to failed with the
error message recorded verbatim. Manual generation re-raises that error.
Scheduled execution logs it and always advances the job's next_run so a
permanently failing job does not spin.
"""

import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from datetime import datetime
from typing import Any

from opentelemetry import trace

from utils.logging import ContextLogger
from utils.metrics import ReportMetrics
from utils.retry import retry_with_backoff
from utils.tracing import add_span_event, trace_operation

from ..analytics import AnalyticsAggregator
from ..errors import (
    ConcurrentUpdateError,
    ConfigError,
    DispatchError,
    NotFoundError,
    RenderError,
    ReportEngineError,
)
from ..models import (
    GeneratedReportRun,
    OutputFormat,
    ReportFilters,
    ReportRequest,
    ReportType,
    RunStatus,
    ScheduledReportJob,
    new_id,
    utc_now,
)
from ..report import Dispatcher, Renderer
from ..schedule import next_run
from ..store import GENERATED_REPORTS, SCHEDULED_REPORTS, RecordStore
from .date_ranges import resolve_date_range
from .jobs import due_jobs
from .locks import KeyedLock

logger = logging.getLogger(__name__)


def count_records(details: dict[str, Any]) -> int:
    """Sum of list lengths and mapping sizes among the top-level detail values."""
    return sum(len(value) for value in details.values() if isinstance(value, (list, dict)))


def _error_message(error: Exception) -> str:
    return str(error) or type(error).__name__


class ReportPipeline:
    """
    Orchestrates aggregation, rendering and delivery of report runs
    """

    def __init__(
        self,
        store: RecordStore,
        aggregator: AnalyticsAggregator,
        renderer: Renderer,
        dispatcher: Dispatcher,
        collaborator_timeout: float = 300.0,
        max_workers: int = 4,
        metrics: ReportMetrics | None = None,
    ):
        """
        Initialize pipeline

        Args:
            store: Record store for jobs and runs
            aggregator: Analytics aggregator
            renderer: Artifact renderer
            dispatcher: Artifact dispatcher
            collaborator_timeout: Seconds allowed for each render or dispatch call
            max_workers: Scheduled jobs run concurrently per tick
            metrics: Optional report metrics
        """
        self.store = store
        self.aggregator = aggregator
        self.renderer = renderer
        self.dispatcher = dispatcher
        self.collaborator_timeout = collaborator_timeout
        self.max_workers = max_workers
        self.metrics = metrics
        self._job_locks = KeyedLock()

    # ------------------------------------------------------------------
    # Manual generation
    # ------------------------------------------------------------------

    def generate_report(
        self,
        report_type: ReportType | str,
        request: ReportRequest,
        now: datetime | None = None,
        generated_by: str = "system",
    ) -> GeneratedReportRun:
        """
        Generate a report on demand

        Args:
            report_type: Report type to generate
            request: Name, date range, formats, recipients and filters
            now: Generation instant (default: current time)
            generated_by: Requesting user

        Returns:
            Completed or sent run

        Raises:
            ConfigError: For an unknown report type or output format
            Exception: Whatever failed the run, re-raised after the run has
                been recorded as failed
        """
        try:
            report_type = ReportType(report_type)
        except ValueError as e:
            raise ConfigError(f"Unknown report type {report_type!r}") from e

        formats = OutputFormat.parse_many(request.formats)

        run = GeneratedReportRun(
            id=new_id("run"),
            name=request.name,
            report_type=report_type,
            date_range=request.date_range,
            recipients=list(request.recipients),
            generated_by=generated_by,
            generated_at=now or utc_now(),
        )

        error = self._execute(run, formats, request.filters)
        if error is not None:
            raise error
        return run

    # ------------------------------------------------------------------
    # Scheduled execution
    # ------------------------------------------------------------------

    def run_scheduled_job(
        self,
        job: ScheduledReportJob,
        now: datetime | None = None,
    ) -> GeneratedReportRun | None:
        """
        Run a scheduled job and advance its schedule

        Runs of the same job are serialized. Generation failures are recorded
        on the run and logged, never raised. The job's last_run and next_run
        are advanced in the store whatever the outcome, and the passed job is
        updated to match.

        Args:
            job: Scheduled job
            now: Run instant (default: current time)

        Returns:
            The run, or None when the job's date range could not be resolved
        """
        now = now or utc_now()

        with self._job_locks.hold(job.id):
            return self._run_locked(job, now)

    def process_due_jobs(self, now: datetime | None = None) -> list[GeneratedReportRun]:
        """
        Run every active job whose next_run is at or before `now`

        Distinct jobs run in parallel on a thread pool. A job whose previous
        run is still in flight is skipped until a later tick.

        Returns:
            Runs produced, in due order
        """
        now = now or utc_now()
        jobs = due_jobs(self.store, now)

        if self.metrics:
            self.metrics.record_jobs_due(len(jobs))

        if not jobs:
            logger.debug("No scheduled reports due")
            return []

        logger.info(f"Processing {len(jobs)} due scheduled report(s)")

        runs = []
        with ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix="report-job",
        ) as pool:
            futures = [(job, pool.submit(self._run_if_idle, job, now)) for job in jobs]

            for job, future in futures:
                try:
                    run = future.result()
                except Exception as e:
                    logger.error(
                        f"Scheduled report {job.id} could not be processed: {e}",
                        exc_info=True,
                        extra={"job_id": job.id},
                    )
                    continue

                if run is not None:
                    runs.append(run)

        return runs

    def _run_if_idle(self, job: ScheduledReportJob, now: datetime) -> GeneratedReportRun | None:
        with self._job_locks.hold(job.id, blocking=False) as acquired:
            if not acquired:
                logger.info(
                    f"Skipping scheduled report {job.id}: a run is already in flight",
                    extra={"job_id": job.id},
                )
                return None

            # Another worker may have run and advanced the job since it was listed
            try:
                current = ScheduledReportJob.from_dict(self.store.get(SCHEDULED_REPORTS, job.id))
            except NotFoundError:
                logger.info(f"Scheduled report {job.id} was deleted before it ran")
                return None

            if not current.is_due(now):
                return None

            return self._run_locked(current, now)

    def _run_locked(self, job: ScheduledReportJob, now: datetime) -> GeneratedReportRun | None:
        log = ContextLogger(__name__, job_id=job.id)
        run = None

        try:
            date_range = resolve_date_range(job.settings.date_range, now)
        except ConfigError as e:
            log.error(f"Scheduled report {job.id} has an unusable date range: {e}")
        else:
            run = GeneratedReportRun(
                id=new_id("run"),
                name=f"{job.name} - {now.date().isoformat()}",
                scheduled_report_id=job.id,
                report_type=job.report_type,
                date_range=date_range,
                recipients=job.recipient_emails,
                generated_by=job.created_by,
                generated_at=now,
            )
            error = self._execute(
                run,
                job.settings.formats,
                job.settings.filters,
                scheduled=True,
            )
            if error is not None:
                log.error(
                    f"Scheduled report {job.id} failed: {run.error}", run_id=run.id
                )

        advanced = self._advance_job(job.id, now)
        job.last_run = advanced.last_run
        job.next_run = advanced.next_run
        job.updated_at = advanced.updated_at
        job.version = advanced.version

        log.info(f"Scheduled report {job.id} next run at {job.next_run.isoformat()}")
        return run

    @retry_with_backoff(
        max_retries=5,
        base_delay=0.05,
        max_delay=1.0,
        retryable_exceptions=(ConcurrentUpdateError,),
    )
    def _advance_job(self, job_id: str, now: datetime) -> ScheduledReportJob:
        """Set last_run and recompute next_run with a compare-and-swap update."""
        current = ScheduledReportJob.from_dict(self.store.get(SCHEDULED_REPORTS, job_id))
        current.last_run = now
        current.next_run = next_run(current.schedule.frequency, current.schedule, now)
        current.updated_at = now

        stored = self.store.update_if_version(SCHEDULED_REPORTS, current.to_dict(), current.version)
        return ScheduledReportJob.from_dict(stored)

    # ------------------------------------------------------------------
    # Run execution
    # ------------------------------------------------------------------

    def _execute(
        self,
        run: GeneratedReportRun,
        formats: Iterable[OutputFormat],
        filters: ReportFilters | None,
        scheduled: bool = False,
    ) -> Exception | None:
        """
        Drive a run to a terminal state and persist it

        Returns:
            The exception that failed the run, or None on success
        """
        started = time.monotonic()
        failure = None
        self._save_run(run, create=True)

        with trace_operation(
            "generate_report",
            kind=trace.SpanKind.INTERNAL,
            run_id=run.id,
            report_type=run.report_type.value,
            job_id=run.scheduled_report_id,
        ):
            try:
                self._generate(run, list(formats), filters, started)
            except Exception as e:
                failure = e
                run.transition(RunStatus.FAILED)
                run.error = _error_message(e)
                run.metadata.processing_time_ms = int((time.monotonic() - started) * 1000)
                add_span_event("run_failed", error=run.error)

            self._save_run(run)

        if self.metrics:
            self.metrics.record_run(
                run.report_type.value,
                run.status.value,
                time.monotonic() - started,
                scheduled=scheduled,
                byte_size=run.metadata.byte_size,
            )

        logger.info(
            f"Report run {run.id} finished with status {run.status.value}",
            extra={"run_id": run.id, "report_type": run.report_type.value},
        )
        return failure

    def _generate(
        self,
        run: GeneratedReportRun,
        formats: list[OutputFormat],
        filters: ReportFilters | None,
        started: float,
    ) -> None:
        payload = self.aggregator.aggregate(run.report_type, run.date_range, filters)
        run.data = {"summary": payload.summary(), "details": payload.details()}
        run.metadata.record_count = count_records(run.data["details"])

        for fmt in formats:
            run.artifacts[fmt.value] = self._call_collaborator(
                self.renderer.render,
                RenderError,
                f"Rendering {fmt.value}",
                run.data,
                fmt,
                run.id,
            )

        run.metadata.byte_size = sum(
            self.renderer.artifact_size(locator) for locator in run.artifacts.values()
        )
        run.metadata.processing_time_ms = int((time.monotonic() - started) * 1000)
        run.transition(RunStatus.COMPLETED)

        if run.recipients:
            self._call_collaborator(
                self.dispatcher.send,
                DispatchError,
                "Dispatch",
                list(run.artifacts.values()),
                list(run.recipients),
            )
            run.transition(RunStatus.SENT)
            add_span_event("run_sent", recipients=len(run.recipients))

    def _call_collaborator(
        self,
        func: Callable[..., Any],
        error_cls: type[ReportEngineError],
        action: str,
        *args,
    ) -> Any:
        """
        Call a renderer or dispatcher with the collaborator timeout

        A call that times out keeps running in its worker thread; runs have
        no cancellation path.

        Raises:
            RenderError / DispatchError: On timeout or any collaborator failure
        """
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="collaborator")
        future = executor.submit(func, *args)

        try:
            return future.result(timeout=self.collaborator_timeout)
        except FutureTimeout:
            raise error_cls(
                f"{action} timed out after {self.collaborator_timeout:g}s"
            ) from None
        except ReportEngineError:
            raise
        except Exception as e:
            raise error_cls(_error_message(e)) from e
        finally:
            executor.shutdown(wait=False)

    def _save_run(self, run: GeneratedReportRun, create: bool = False) -> None:
        if create:
            stored = self.store.create(GENERATED_REPORTS, run.to_dict())
        else:
            stored = self.store.update_if_version(GENERATED_REPORTS, run.to_dict(), run.version)
        run.version = stored["version"]

