"""
CLI command implementations.

Each command takes the parsed arguments and an EngineContext and returns the
process exit code. Engine errors are reported by main() and exit with 1.
"""

import argparse
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from utils.metrics import initialize_metrics

from ..analytics import AnalyticsAggregator
from ..config import EngineConfig
from ..datasource import DataSource, load_snapshot
from ..errors import ConfigError
from ..models import (
    DateRange,
    GeneratedReportRun,
    OutputFormat,
    Recipient,
    ReconciliationStatus,
    ReportFilters,
    ReportRequest,
    ReportSettings,
    ScheduleConfig,
    parse_instant,
    utc_now,
)
from ..pipeline import (
    JobDefinition,
    ReportPipeline,
    ReportScheduler,
    create_scheduled_job,
    delete_scheduled_job,
    get_scheduled_job,
    list_scheduled_jobs,
    report_statistics,
    resolve_date_range,
    update_scheduled_job,
)
from ..reconciliation import ReconciliationMatcher, load_statement_csv, statement_total
from ..report import (
    FileRenderer,
    LogDispatcher,
    format_jobs_table,
    format_reconciliation_console,
    format_run_console,
)
from ..schedule import upcoming_runs
from ..store import GENERATED_REPORTS, FileRecordStore, RecordStore

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    """Collaborators shared by the commands of one CLI invocation."""

    config: EngineConfig
    store: RecordStore
    data_path: str | None = None
    _data_source: DataSource | None = field(default=None, repr=False)

    @property
    def has_data(self) -> bool:
        return self._data_source is not None or bool(self.data_path)

    @property
    def data_source(self) -> DataSource:
        """Snapshot given with --data, loaded on first use."""
        if self._data_source is None:
            if not self.data_path:
                raise ConfigError("This command needs a data snapshot (--data)")
            self._data_source = load_snapshot(self.data_path)
        return self._data_source

    def pipeline(self, metrics=None) -> ReportPipeline:
        return ReportPipeline(
            store=self.store,
            aggregator=AnalyticsAggregator(
                self.data_source, owner_share=self.config.owner_revenue_share
            ),
            renderer=FileRenderer(self.config.output_dir),
            dispatcher=LogDispatcher(),
            collaborator_timeout=self.config.collaborator_timeout,
            max_workers=self.config.max_workers,
            metrics=metrics,
        )

    def matcher(self, metrics=None) -> ReconciliationMatcher:
        return ReconciliationMatcher(
            store=self.store,
            tolerance=self.config.reconciliation_tolerance,
            data_source=self.data_source if self.has_data else None,
            metrics=metrics,
        )


def build_context(args: argparse.Namespace, config: EngineConfig | None = None) -> EngineContext:
    """
    Build the command context from global options and the environment

    Args:
        args: Parsed command-line arguments
        config: Engine configuration (default: read from the environment)

    Returns:
        EngineContext with a file record store
    """
    config = config or EngineConfig.from_env()
    if args.state_dir:
        config.state_dir = args.state_dir
    if args.output_dir:
        config.output_dir = args.output_dir

    return EngineContext(
        config=config,
        store=FileRecordStore(config.state_dir),
        data_path=args.data,
    )


def _split(value: str | None) -> list[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


def _filters(args: argparse.Namespace) -> ReportFilters:
    return ReportFilters(
        property_ids=_split(args.property_ids) or None,
        categories=_split(args.categories) or None,
        min_amount=args.min_amount,
        max_amount=args.max_amount,
    )


def _parse_bound(value: str, end: bool = False) -> datetime:
    """Parse a range bound; a bare date used as an end covers the whole day."""
    try:
        instant = parse_instant(value)
    except ValueError as e:
        raise ConfigError(f"Invalid date {value!r}: {e}") from e

    if end and "T" not in value and " " not in value.strip():
        instant = instant + timedelta(days=1) - timedelta(microseconds=1)
    return instant


# ========== Generate ==========

def cmd_generate(args: argparse.Namespace, ctx: EngineContext) -> int:
    """
    Generate a report on demand and print it

    Args:
        args: Parsed command-line arguments
        ctx: Command context
    """
    now = utc_now()

    if args.start or args.end:
        if not (args.start and args.end):
            raise ConfigError("--start and --end must be given together")
        date_range = DateRange(_parse_bound(args.start), _parse_bound(args.end, end=True))
    else:
        date_range = resolve_date_range(args.range, now)

    name = args.name or (
        f"{args.type.title()} Report {date_range.start.date().isoformat()} "
        f"to {date_range.end.date().isoformat()}"
    )
    request = ReportRequest(
        name=name,
        date_range=date_range,
        formats=OutputFormat.parse_many(args.formats),
        recipients=_split(args.recipients),
        filters=_filters(args),
    )

    logger.info(f"Generating {args.type} report: {name}")
    run = ctx.pipeline().generate_report(args.type, request, now=now, generated_by=args.generated_by)

    print(format_run_console(run))
    for fmt, locator in run.artifacts.items():
        print(f"{fmt}: {locator}")
    return 0


# ========== Jobs ==========

def cmd_jobs_add(args: argparse.Namespace, ctx: EngineContext) -> int:
    draft = JobDefinition(
        name=args.name,
        report_type=args.type,
        schedule=ScheduleConfig(
            frequency=args.frequency,
            time=args.time,
            timezone=args.timezone,
            day_of_week=args.day_of_week,
            day_of_month=args.day_of_month,
        ),
        settings=ReportSettings(
            date_range=args.range,
            formats=OutputFormat.parse_many(args.formats),
            include_charts=not args.no_charts,
            include_raw_data=args.raw_data,
            filters=_filters(args),
        ),
        recipients=[Recipient(email=email) for email in _split(args.recipients)],
        description=args.description,
        is_active=not args.inactive,
    )

    job = create_scheduled_job(ctx.store, draft, created_by=args.created_by)
    print(f"Created scheduled report {job.id}, next run {job.next_run.isoformat()}")
    return 0


def cmd_jobs_list(args: argparse.Namespace, ctx: EngineContext) -> int:
    jobs = list_scheduled_jobs(ctx.store, active_only=args.active)
    print(format_jobs_table(jobs))
    return 0


def cmd_jobs_remove(args: argparse.Namespace, ctx: EngineContext) -> int:
    delete_scheduled_job(ctx.store, args.job_id)
    print(f"Deleted scheduled report {args.job_id}")
    return 0


def cmd_jobs_pause(args: argparse.Namespace, ctx: EngineContext) -> int:
    update_scheduled_job(ctx.store, args.job_id, {"is_active": False})
    print(f"Paused scheduled report {args.job_id}")
    return 0


def cmd_jobs_resume(args: argparse.Namespace, ctx: EngineContext) -> int:
    job = update_scheduled_job(ctx.store, args.job_id, {"is_active": True})
    print(f"Resumed scheduled report {job.id}, next run {job.next_run.isoformat()}")
    return 0


def cmd_jobs_preview(args: argparse.Namespace, ctx: EngineContext) -> int:
    """Print upcoming run instants in UTC and in the job's timezone."""
    job = get_scheduled_job(ctx.store, args.job_id)
    runs = upcoming_runs(job.schedule.frequency, job.schedule, utc_now(), count=args.count)

    print(f"Upcoming runs of {job.name} ({job.schedule.frequency.value}, {job.schedule.timezone}):")
    zone = ZoneInfo(job.schedule.timezone)
    for instant in runs:
        print(f"  {instant.isoformat()}  ({instant.astimezone(zone).isoformat()})")
    return 0


# ========== Schedule ==========

def cmd_schedule(args: argparse.Namespace, ctx: EngineContext) -> int:
    """
    Run the polling loop until interrupted, or a single poll with --once

    Args:
        args: Parsed command-line arguments
        ctx: Command context
    """
    metrics = None
    if not args.no_metrics and not args.once:
        metrics = initialize_metrics(port=ctx.config.metrics_port)["reports"]

    scheduler = ReportScheduler(
        ctx.pipeline(metrics=metrics),
        poll_interval=args.interval or ctx.config.poll_interval,
        blocking=True,
        metrics=metrics,
    )

    if args.once:
        runs = scheduler.tick()
        for run in runs:
            print(f"{run.id} {run.status.value} {run.name}")
        print(f"Processed {len(runs)} scheduled report(s)")
        return 0

    logger.info("Starting scheduler (press Ctrl+C to stop)")
    scheduler.start()
    return 0


# ========== Reconcile ==========

def cmd_reconcile_start(args: argparse.Namespace, ctx: EngineContext) -> int:
    matcher = ctx.matcher()
    record = matcher.start_period(args.period, property_id=args.property_id)
    print(format_reconciliation_console(record))
    return 0


def cmd_reconcile_apply(args: argparse.Namespace, ctx: EngineContext) -> int:
    """
    Apply a statement to a reconciliation period

    Exits with 1 when the period is left in discrepancy.
    """
    entries = load_statement_csv(args.statement_csv) if args.statement_csv else []

    if args.statement_total is not None:
        total = args.statement_total
    elif entries:
        total = statement_total(entries)
    else:
        raise ConfigError("Either --statement-total or --statement-csv is required")

    matcher = ctx.matcher()
    record = matcher.get(args.record_id)
    matcher.apply_statement(record, total, statement_entries=entries, reconciled_by=args.by)
    print(format_reconciliation_console(record))

    if record.status == ReconciliationStatus.DISCREPANCY:
        logger.warning(f"Reconciliation {record.id} found discrepancies")
        return 1
    return 0


def cmd_reconcile_resolve(args: argparse.Namespace, ctx: EngineContext) -> int:
    matcher = ctx.matcher()
    record = matcher.resolve_discrepancy(matcher.get(args.record_id), args.note, resolved_by=args.by)
    print(format_reconciliation_console(record))
    return 0


def cmd_reconcile_dispute(args: argparse.Namespace, ctx: EngineContext) -> int:
    matcher = ctx.matcher()
    record = matcher.dispute(matcher.get(args.record_id), args.reason)
    print(format_reconciliation_console(record))
    return 0


def cmd_reconcile_reopen(args: argparse.Namespace, ctx: EngineContext) -> int:
    matcher = ctx.matcher()
    record = matcher.reopen(matcher.get(args.record_id), args.note)
    print(format_reconciliation_console(record))
    return 0


def cmd_reconcile_list(args: argparse.Namespace, ctx: EngineContext) -> int:
    records = ctx.matcher().list_records(period=args.period, status=args.status)

    print(f"{'ID':<18} {'PERIOD':<8} {'STATUS':<12} {'LEDGER':>14} {'STATEMENT':>14} {'DIFF':>12}")
    for record in records:
        print(
            f"{record.id:<18} {record.period:<8} {record.status.value:<12} "
            f"{record.ledger_total:>14,.2f} {record.statement_total:>14,.2f} "
            f"{record.difference:>12,.2f}"
        )
    return 0


def cmd_reconcile_show(args: argparse.Namespace, ctx: EngineContext) -> int:
    print(format_reconciliation_console(ctx.matcher().get(args.record_id)))
    return 0


# ========== Runs ==========

def cmd_runs_list(args: argparse.Namespace, ctx: EngineContext) -> int:
    def wanted(doc: dict) -> bool:
        if args.job and doc.get("scheduled_report_id") != args.job:
            return False
        return not args.status or doc["status"] == args.status

    runs = [GeneratedReportRun.from_dict(d) for d in ctx.store.list(GENERATED_REPORTS, wanted)]
    runs.sort(key=lambda r: (r.generated_at, r.id), reverse=True)

    print(f"{'ID':<18} {'TYPE':<14} {'STATUS':<11} {'GENERATED':<26} NAME")
    for run in runs[:args.limit]:
        print(
            f"{run.id:<18} {run.report_type.value:<14} {run.status.value:<11} "
            f"{run.generated_at.isoformat():<26} {run.name}"
        )
    return 0


def cmd_runs_show(args: argparse.Namespace, ctx: EngineContext) -> int:
    doc = ctx.store.get(GENERATED_REPORTS, args.run_id)
    if args.json:
        print(json.dumps(doc, indent=2, sort_keys=True))
    else:
        print(format_run_console(GeneratedReportRun.from_dict(doc)))
    return 0


# ========== Stats ==========

def cmd_stats(args: argparse.Namespace, ctx: EngineContext) -> int:
    stats = report_statistics(ctx.store, utc_now())
    reconciliation = ReconciliationMatcher.summarize(ctx.matcher().list_records())

    print(json.dumps(
        {"reports": stats.to_dict(), "reconciliations": reconciliation},
        indent=2,
    ))
    return 0
