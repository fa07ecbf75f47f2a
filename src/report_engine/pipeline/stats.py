"""
Report activity statistics.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from ..models import parse_instant
from ..store import GENERATED_REPORTS, SCHEDULED_REPORTS, RecordStore

RECENT_WINDOW = timedelta(hours=24)


@dataclass
class ReportStatistics:
    total_scheduled: int
    active_scheduled: int
    total_generated: int
    recently_generated: int
    by_type: dict[str, int] = field(default_factory=dict)
    by_status: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_scheduled": self.total_scheduled,
            "active_scheduled": self.active_scheduled,
            "total_generated": self.total_generated,
            "recently_generated": self.recently_generated,
            "by_type": dict(self.by_type),
            "by_status": dict(self.by_status),
        }


def report_statistics(store: RecordStore, now: datetime) -> ReportStatistics:
    """
    Summarize scheduled jobs and generated runs

    Args:
        store: Record store
        now: Reference instant for the 24 hour "recent" window

    Returns:
        ReportStatistics with run counts by type and by status
    """
    jobs = store.list(SCHEDULED_REPORTS)
    runs = store.list(GENERATED_REPORTS)
    recent_cutoff = now - RECENT_WINDOW

    return ReportStatistics(
        total_scheduled=len(jobs),
        active_scheduled=sum(1 for j in jobs if j.get("is_active", True)),
        total_generated=len(runs),
        recently_generated=sum(
            1 for r in runs if parse_instant(r["generated_at"]) >= recent_cutoff
        ),
        by_type=dict(sorted(Counter(r["report_type"] for r in runs).items())),
        by_status=dict(sorted(Counter(r["status"] for r in runs).items())),
    )
