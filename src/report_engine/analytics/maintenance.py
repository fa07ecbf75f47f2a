"""
Maintenance report: request volumes, resolution times and costs.
"""

from collections import Counter, defaultdict

from ..datasource import DataSource, MaintenanceStatus
from ..models import DateRange, ReportFilters
from .helpers import (
    days_between,
    mean,
    month_key,
    month_keys,
    percentage,
    round_money,
    round_rate,
    safe_divide,
)
from .ledger import maintenance_in_range
from .payloads import MaintenanceIssue, MaintenancePayload, MonthlyMaintenance

TOP_ISSUES = 5


def maintenance_metrics(
    source: DataSource,
    date_range: DateRange,
    filters: ReportFilters | None = None,
) -> MaintenancePayload:
    """
    Compute maintenance metrics for requests created in the range

    Resolution time is the mean of (completed_at - created_at) in days over
    completed requests only.
    """
    filters = filters or ReportFilters()
    requests = maintenance_in_range(source, date_range, filters.property_ids)

    completed = [m for m in requests if m.is_completed and m.completed_at is not None]
    resolution_days = [days_between(m.created_at, m.completed_at) for m in completed]
    total_costs = sum(m.cost for m in requests)

    by_category = Counter(m.category for m in requests)
    by_priority = Counter(m.priority for m in requests)
    costs_by_category: dict[str, float] = defaultdict(float)
    for m in requests:
        costs_by_category[m.category] += m.cost

    monthly_requests = defaultdict(list)
    for m in requests:
        monthly_requests[month_key(m.created_at)].append(m)

    trends = []
    for key in month_keys(date_range.start, date_range.end):
        items = monthly_requests.get(key, [])
        done = [m for m in items if m.is_completed and m.completed_at is not None]
        trends.append(MonthlyMaintenance(
            month=key,
            requests=len(items),
            costs=round_money(sum(m.cost for m in items)),
            average_resolution_days=round_rate(
                mean(days_between(m.created_at, m.completed_at) for m in done)
            ),
        ))

    ranked = sorted(by_category.items(), key=lambda item: (-item[1], item[0]))[:TOP_ISSUES]

    return MaintenancePayload(
        total_requests=len(requests),
        completed_requests=len(completed),
        pending_requests=sum(1 for m in requests if m.status == MaintenanceStatus.PENDING),
        in_progress_requests=sum(
            1 for m in requests if m.status == MaintenanceStatus.IN_PROGRESS
        ),
        completion_rate=round_rate(percentage(len(completed), len(requests))),
        average_resolution_days=round_rate(mean(resolution_days)),
        total_costs=round_money(total_costs),
        average_cost_per_request=round_money(safe_divide(total_costs, len(requests))),
        by_category=dict(sorted(by_category.items())),
        by_priority=dict(sorted(by_priority.items())),
        costs_by_category={k: round_money(v) for k, v in sorted(costs_by_category.items())},
        monthly_trends=trends,
        top_issues=[
            MaintenanceIssue(
                category=category,
                count=count,
                average_cost=round_money(safe_divide(costs_by_category[category], count)),
            )
            for category, count in ranked
        ],
    )
