"""
Portfolio report: per-property occupancy and returns, with portfolio rollups.
"""

from collections import defaultdict

from ..config import OWNER_REVENUE_SHARE
from ..datasource import DataSource, TransactionType
from ..models import DateRange, ReportFilters
from .helpers import percentage, round_money, round_rate, safe_divide
from .ledger import effective_transactions, maintenance_in_range
from .payloads import PortfolioPayload, PropertyPerformance

RANKING_SIZE = 3


def portfolio_metrics(
    source: DataSource,
    date_range: DateRange,
    filters: ReportFilters | None = None,
    owner_share: float = OWNER_REVENUE_SHARE,
) -> PortfolioPayload:
    """
    Compute per-property and portfolio-level performance

    Occupancy counts units holding an active lease. Owner distribution and
    management fees split total revenue by `owner_share`.
    """
    filters = filters or ReportFilters()
    property_ids = filters.property_ids

    properties = sorted(source.properties(property_ids), key=lambda p: p.id)
    units = source.units(property_ids)
    active_leases = [lease for lease in source.leases(property_ids) if lease.is_active]
    transactions = effective_transactions(source, date_range, filters)
    maintenance = maintenance_in_range(source, date_range, property_ids)

    units_by_property: dict[str, set[str]] = defaultdict(set)
    for unit in units:
        units_by_property[unit.property_id].add(unit.id)

    revenue_by_property: dict[str, float] = defaultdict(float)
    expenses_by_property: dict[str, float] = defaultdict(float)
    for t in transactions:
        if t.property_id is None:
            continue
        if t.type == TransactionType.INCOME:
            revenue_by_property[t.property_id] += t.amount
        else:
            expenses_by_property[t.property_id] += t.amount

    performances = []
    for prop in properties:
        unit_ids = units_by_property.get(prop.id, set())
        leases = [lease for lease in active_leases if lease.property_id == prop.id]
        occupied = len({lease.unit_id for lease in leases if lease.unit_id in unit_ids})
        rent_roll = sum(lease.rent_amount for lease in leases)
        revenue = revenue_by_property.get(prop.id, 0.0)
        expenses = expenses_by_property.get(prop.id, 0.0)
        requests = [m for m in maintenance if m.property_id == prop.id]

        performances.append(PropertyPerformance(
            property_id=prop.id,
            name=prop.name,
            total_units=len(unit_ids),
            occupied_units=occupied,
            occupancy_rate=round_rate(percentage(occupied, len(unit_ids))),
            rent_roll=round_money(rent_roll),
            average_rent=round_money(safe_divide(rent_roll, len(leases))),
            revenue=round_money(revenue),
            expenses=round_money(expenses),
            net_income=round_money(revenue - expenses),
            roi=round_rate(percentage(revenue - expenses, revenue)),
            maintenance_costs=round_money(sum(m.cost for m in requests)),
            maintenance_requests=len(requests),
        ))

    total_units = sum(p.total_units for p in performances)
    occupied_units = sum(p.occupied_units for p in performances)
    total_revenue = sum(revenue_by_property.get(p.id, 0.0) for p in properties)
    total_expenses = sum(expenses_by_property.get(p.id, 0.0) for p in properties)

    # Property id breaks ROI ties so rankings are stable across runs
    best_first = sorted(performances, key=lambda p: (-p.roi, p.property_id))
    worst_first = sorted(performances, key=lambda p: (p.roi, p.property_id))

    return PortfolioPayload(
        total_properties=len(performances),
        total_units=total_units,
        occupied_units=occupied_units,
        occupancy_rate=round_rate(percentage(occupied_units, total_units)),
        total_rent_roll=round_money(sum(p.rent_roll for p in performances)),
        total_revenue=round_money(total_revenue),
        total_expenses=round_money(total_expenses),
        net_income=round_money(total_revenue - total_expenses),
        portfolio_roi=round_rate(percentage(total_revenue - total_expenses, total_revenue)),
        owner_distribution=round_money(total_revenue * owner_share),
        management_fees=round_money(total_revenue * (1 - owner_share)),
        total_portfolio_value=round_money(sum(p.value or 0.0 for p in properties)),
        properties=performances,
        top_performers=best_first[:RANKING_SIZE],
        bottom_performers=worst_first[:RANKING_SIZE],
    )
