"""
Scheduled report job management.

Jobs are validated before they are stored, so a misconfigured schedule fails
at creation or update time rather than when the scheduler reaches it.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from utils.retry import retry_with_backoff

from ..errors import ConcurrentUpdateError, ConfigError
from ..models import (
    DateRangeSelector,
    OutputFormat,
    Recipient,
    ReportSettings,
    ReportType,
    ScheduleConfig,
    ScheduledReportJob,
    new_id,
    parse_instant,
    utc_now,
)
from ..schedule import next_run, validate_schedule
from ..store import SCHEDULED_REPORTS, RecordStore

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    "name", "description", "report_type", "schedule", "settings", "recipients", "is_active",
})


@dataclass
class JobDefinition:
    """User-supplied fields of a new scheduled report."""

    name: str
    report_type: ReportType
    schedule: ScheduleConfig
    settings: ReportSettings = field(default_factory=ReportSettings)
    recipients: list[Recipient] = field(default_factory=list)
    description: str = ""
    is_active: bool = True


def validate_job_fields(
    name: str,
    report_type: ReportType | str,
    schedule: ScheduleConfig,
    settings: ReportSettings,
    recipients: list[Recipient],
    is_active: bool,
) -> None:
    """
    Check a job definition

    Raises:
        ConfigError: On any invalid field
    """
    if not name or not name.strip():
        raise ConfigError("Report name is required")

    try:
        ReportType(report_type)
    except ValueError as e:
        raise ConfigError(f"Unknown report type {report_type!r}") from e

    validate_schedule(schedule.frequency, schedule)

    try:
        DateRangeSelector(settings.date_range)
    except ValueError as e:
        raise ConfigError(f"Unknown date range selector {settings.date_range!r}") from e

    if not settings.formats:
        raise ConfigError("At least one output format is required")
    for fmt in settings.formats:
        OutputFormat.parse_many([fmt])

    filters = settings.filters
    if (
        filters.min_amount is not None
        and filters.max_amount is not None
        and filters.min_amount > filters.max_amount
    ):
        raise ConfigError("min_amount cannot exceed max_amount")

    if is_active and not recipients:
        raise ConfigError("An active scheduled report needs at least one recipient")
    for recipient in recipients:
        if "@" not in recipient.email:
            raise ConfigError(f"Invalid recipient email {recipient.email!r}")


def create_scheduled_job(
    store: RecordStore,
    draft: JobDefinition,
    created_by: str = "system",
    now: datetime | None = None,
) -> ScheduledReportJob:
    """
    Validate and persist a new scheduled report

    Args:
        store: Record store
        draft: Job definition
        created_by: User creating the job
        now: Creation instant (default: current time)

    Returns:
        Stored job with next_run computed from `now`

    Raises:
        ConfigError: If the definition is invalid
    """
    now = now or utc_now()

    validate_job_fields(
        draft.name, draft.report_type, draft.schedule, draft.settings,
        draft.recipients, draft.is_active,
    )

    job = ScheduledReportJob(
        id=new_id("job"),
        name=draft.name.strip(),
        description=draft.description,
        report_type=ReportType(draft.report_type),
        schedule=draft.schedule,
        settings=draft.settings,
        recipients=list(draft.recipients),
        is_active=draft.is_active,
        next_run=next_run(draft.schedule.frequency, draft.schedule, now),
        created_by=created_by,
        created_at=now,
        updated_at=now,
    )

    stored = ScheduledReportJob.from_dict(store.create(SCHEDULED_REPORTS, job.to_dict()))
    logger.info(
        f"Created scheduled report {stored.id} ({stored.report_type.value}, "
        f"{stored.schedule.frequency.value}), next run {stored.next_run.isoformat()}",
        extra={"job_id": stored.id},
    )
    return stored


def _coerce(key: str, value: Any) -> Any:
    if key == "schedule" and isinstance(value, dict):
        return ScheduleConfig.from_dict(value)
    if key == "settings" and isinstance(value, dict):
        return ReportSettings.from_dict(value)
    if key == "recipients":
        return [Recipient.from_dict(r) if isinstance(r, dict) else r for r in value]
    if key == "report_type":
        try:
            return ReportType(value)
        except ValueError as e:
            raise ConfigError(f"Unknown report type {value!r}") from e
    return value


@retry_with_backoff(
    max_retries=5,
    base_delay=0.05,
    max_delay=1.0,
    retryable_exceptions=(ConcurrentUpdateError,),
)
def update_scheduled_job(
    store: RecordStore,
    job_id: str,
    changes: dict[str, Any],
    now: datetime | None = None,
) -> ScheduledReportJob:
    """
    Apply manual edits to a scheduled report

    A schedule change, or reactivating a paused job, recomputes next_run
    from `now`. Changes are validated before commit.

    Args:
        store: Record store
        job_id: Job to update
        changes: Field name to new value
        now: Edit instant (default: current time)

    Returns:
        Updated job

    Raises:
        ConfigError: For unknown fields or invalid values
        NotFoundError: If the job does not exist
    """
    now = now or utc_now()

    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ConfigError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    job = ScheduledReportJob.from_dict(store.get(SCHEDULED_REPORTS, job_id))
    was_active = job.is_active
    old_schedule = job.schedule.to_dict()

    for key, value in changes.items():
        setattr(job, key, _coerce(key, value))

    validate_job_fields(
        job.name, job.report_type, job.schedule, job.settings, job.recipients, job.is_active
    )

    if job.schedule.to_dict() != old_schedule or (job.is_active and not was_active):
        job.next_run = next_run(job.schedule.frequency, job.schedule, now)

    job.updated_at = now
    stored = store.update_if_version(SCHEDULED_REPORTS, job.to_dict(), job.version)

    logger.info(f"Updated scheduled report {job_id}: {', '.join(sorted(changes))}",
                extra={"job_id": job_id})
    return ScheduledReportJob.from_dict(stored)


def delete_scheduled_job(store: RecordStore, job_id: str) -> None:
    """
    Remove a scheduled report; its past runs are kept

    Raises:
        NotFoundError: If the job does not exist
    """
    store.delete(SCHEDULED_REPORTS, job_id)
    logger.info(f"Deleted scheduled report {job_id}", extra={"job_id": job_id})


def get_scheduled_job(store: RecordStore, job_id: str) -> ScheduledReportJob:
    return ScheduledReportJob.from_dict(store.get(SCHEDULED_REPORTS, job_id))


def list_scheduled_jobs(store: RecordStore, active_only: bool = False) -> list[ScheduledReportJob]:
    docs = store.list(SCHEDULED_REPORTS, (lambda d: d.get("is_active", True)) if active_only else None)
    return [ScheduledReportJob.from_dict(d) for d in docs]


def due_jobs(store: RecordStore, now: datetime) -> list[ScheduledReportJob]:
    """
    Active jobs whose next_run is at or before `now`

    Returns:
        Jobs ordered by (next_run, id)
    """
    def is_due(doc: dict[str, Any]) -> bool:
        return doc.get("is_active", True) and parse_instant(doc["next_run"]) <= now

    jobs = [ScheduledReportJob.from_dict(d) for d in store.list(SCHEDULED_REPORTS, is_due)]
    return sorted(jobs, key=lambda j: (j.next_run, j.id))
