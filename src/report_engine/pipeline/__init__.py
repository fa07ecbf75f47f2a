"""
Report pipeline module

Runs scheduled and manual report generation, manages scheduled jobs and
drives the polling loop.
"""

from .date_ranges import resolve_date_range
from .jobs import (
    JobDefinition,
    create_scheduled_job,
    delete_scheduled_job,
    due_jobs,
    get_scheduled_job,
    list_scheduled_jobs,
    update_scheduled_job,
)
from .locks import KeyedLock
from .runner import ReportPipeline, count_records
from .scheduler import ReportScheduler
from .stats import ReportStatistics, report_statistics

__all__ = [
    'JobDefinition',
    'KeyedLock',
    'ReportPipeline',
    'ReportScheduler',
    'ReportStatistics',
    'count_records',
    'create_scheduled_job',
    'delete_scheduled_job',
    'due_jobs',
    'get_scheduled_job',
    'list_scheduled_jobs',
    'report_statistics',
    'resolve_date_range',
    'update_scheduled_job',
]
