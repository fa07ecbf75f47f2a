"""
Tenant report: tenancy counts, renewals, stay length and distributions.
"""

from collections import Counter

from ..datasource import DataSource, LeaseStatus
from ..models import DateRange, ReportFilters
from .helpers import mean, months_between, percentage, round_money, round_rate, safe_divide
from .ledger import maintenance_in_range
from .payloads import TenantPayload

# (label, upper bound in months); the last bucket is open-ended
DURATION_BUCKETS = (
    ("0-6 months", 6),
    ("6-12 months", 12),
    ("1-2 years", 24),
    ("2-3 years", 36),
    ("3+ years", None),
)


def duration_bucket(months: float) -> str:
    for label, upper in DURATION_BUCKETS:
        if upper is None or months < upper:
            return label
    return DURATION_BUCKETS[-1][0]


def tenant_metrics(
    source: DataSource,
    date_range: DateRange,
    filters: ReportFilters | None = None,
) -> TenantPayload:
    """
    Compute tenant metrics for a date range

    Renewal and early-termination rates are taken over leases that ended in
    the range; average stay is measured over those same leases.
    """
    filters = filters or ReportFilters()
    leases = source.leases(filters.property_ids)
    active = [lease for lease in leases if lease.is_active]
    ended = [
        lease for lease in leases
        if not lease.is_active
        and lease.end_date is not None
        and date_range.contains(lease.end_date)
    ]

    if filters.property_ids is None:
        tenant_ids = {t.id for t in source.tenants()}
    else:
        tenant_ids = {lease.tenant_id for lease in leases}

    active_tenants = {lease.tenant_id for lease in active}
    new_tenants = {lease.tenant_id for lease in leases if date_range.contains(lease.start_date)}
    departed = {
        lease.tenant_id for lease in ended
        if not lease.renewed and lease.status != LeaseStatus.RENEWED
    } - active_tenants

    renewed = [lease for lease in ended if lease.renewed or lease.status == LeaseStatus.RENEWED]
    terminated = [lease for lease in ended if lease.status == LeaseStatus.TERMINATED]

    units = {unit.id: unit for unit in source.units(filters.property_ids)}
    by_unit_type = Counter(
        units[lease.unit_id].unit_type if lease.unit_id in units else "unknown"
        for lease in active
    )

    by_duration = {label: 0 for label, _ in DURATION_BUCKETS}
    for lease in active:
        by_duration[duration_bucket(months_between(lease.start_date, date_range.end))] += 1

    requests = maintenance_in_range(source, date_range, filters.property_ids)

    return TenantPayload(
        total_tenants=len(tenant_ids),
        active_tenants=len(active_tenants),
        new_tenants=len(new_tenants),
        departed_tenants=len(departed),
        renewal_rate=round_rate(percentage(len(renewed), len(ended))),
        early_termination_rate=round_rate(percentage(len(terminated), len(ended))),
        average_rent=round_money(mean(lease.rent_amount for lease in active)),
        average_stay_months=round_rate(
            mean(months_between(lease.start_date, lease.end_date) for lease in ended)
        ),
        maintenance_requests_per_tenant=round_rate(
            safe_divide(len(requests), len(active_tenants))
        ),
        by_unit_type=dict(sorted(by_unit_type.items())),
        by_tenancy_duration=by_duration,
    )
