"""
Typed metrics payloads, one per report type.

Each payload splits into a flat summary (headline numbers) and details
(breakdowns and per-entity rows); both are JSON-ready dictionaries that fill
GeneratedReportRun.data.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar

from ..models import ReportType


@dataclass
class MonthlyFinancials:
    month: str
    revenue: float
    expenses: float
    net_income: float


@dataclass
class FinancialPayload:
    total_revenue: float
    total_expenses: float
    net_income: float
    revenue_growth: float
    expense_growth: float
    net_income_growth: float
    profit_margin: float
    gross_margin: float
    operating_expense_ratio: float
    collection_rate: float
    outstanding_rent: float
    average_rent_collection: float
    transaction_count: int
    monthly_breakdown: list[MonthlyFinancials] = field(default_factory=list)
    revenue_by_category: dict[str, float] = field(default_factory=dict)
    expenses_by_category: dict[str, float] = field(default_factory=dict)

    report_type: ClassVar[ReportType] = ReportType.FINANCIAL

    def summary(self) -> dict[str, Any]:
        return {
            "total_revenue": self.total_revenue,
            "total_expenses": self.total_expenses,
            "net_income": self.net_income,
            "revenue_growth": self.revenue_growth,
            "expense_growth": self.expense_growth,
            "net_income_growth": self.net_income_growth,
            "profit_margin": self.profit_margin,
            "gross_margin": self.gross_margin,
            "operating_expense_ratio": self.operating_expense_ratio,
            "collection_rate": self.collection_rate,
            "outstanding_rent": self.outstanding_rent,
            "average_rent_collection": self.average_rent_collection,
            "transaction_count": self.transaction_count,
        }

    def details(self) -> dict[str, Any]:
        return {
            "monthly_breakdown": [asdict(m) for m in self.monthly_breakdown],
            "revenue_by_category": dict(self.revenue_by_category),
            "expenses_by_category": dict(self.expenses_by_category),
        }


@dataclass
class PropertyPerformance:
    property_id: str
    name: str
    total_units: int
    occupied_units: int
    occupancy_rate: float
    rent_roll: float
    average_rent: float
    revenue: float
    expenses: float
    net_income: float
    roi: float
    maintenance_costs: float
    maintenance_requests: int


@dataclass
class PortfolioPayload:
    total_properties: int
    total_units: int
    occupied_units: int
    occupancy_rate: float
    total_rent_roll: float
    total_revenue: float
    total_expenses: float
    net_income: float
    portfolio_roi: float
    owner_distribution: float
    management_fees: float
    total_portfolio_value: float
    properties: list[PropertyPerformance] = field(default_factory=list)
    top_performers: list[PropertyPerformance] = field(default_factory=list)
    bottom_performers: list[PropertyPerformance] = field(default_factory=list)

    report_type: ClassVar[ReportType] = ReportType.PORTFOLIO

    def summary(self) -> dict[str, Any]:
        return {
            "total_properties": self.total_properties,
            "total_units": self.total_units,
            "occupied_units": self.occupied_units,
            "occupancy_rate": self.occupancy_rate,
            "total_rent_roll": self.total_rent_roll,
            "total_revenue": self.total_revenue,
            "total_expenses": self.total_expenses,
            "net_income": self.net_income,
            "portfolio_roi": self.portfolio_roi,
            "owner_distribution": self.owner_distribution,
            "management_fees": self.management_fees,
            "total_portfolio_value": self.total_portfolio_value,
        }

    def details(self) -> dict[str, Any]:
        def ranked(items: list[PropertyPerformance]) -> list[dict[str, Any]]:
            return [{"property_id": p.property_id, "name": p.name, "roi": p.roi} for p in items]

        return {
            "properties": [asdict(p) for p in self.properties],
            "top_performers": ranked(self.top_performers),
            "bottom_performers": ranked(self.bottom_performers),
        }


@dataclass
class TenantPayload:
    total_tenants: int
    active_tenants: int
    new_tenants: int
    departed_tenants: int
    renewal_rate: float
    early_termination_rate: float
    average_rent: float
    average_stay_months: float
    maintenance_requests_per_tenant: float
    by_unit_type: dict[str, int] = field(default_factory=dict)
    by_tenancy_duration: dict[str, int] = field(default_factory=dict)

    report_type: ClassVar[ReportType] = ReportType.TENANT

    def summary(self) -> dict[str, Any]:
        return {
            "total_tenants": self.total_tenants,
            "active_tenants": self.active_tenants,
            "new_tenants": self.new_tenants,
            "departed_tenants": self.departed_tenants,
            "renewal_rate": self.renewal_rate,
            "early_termination_rate": self.early_termination_rate,
            "average_rent": self.average_rent,
            "average_stay_months": self.average_stay_months,
            "maintenance_requests_per_tenant": self.maintenance_requests_per_tenant,
        }

    def details(self) -> dict[str, Any]:
        return {
            "by_unit_type": dict(self.by_unit_type),
            "by_tenancy_duration": dict(self.by_tenancy_duration),
        }


@dataclass
class MonthlyMaintenance:
    month: str
    requests: int
    costs: float
    average_resolution_days: float


@dataclass
class MaintenanceIssue:
    category: str
    count: int
    average_cost: float


@dataclass
class MaintenancePayload:
    total_requests: int
    completed_requests: int
    pending_requests: int
    in_progress_requests: int
    completion_rate: float
    average_resolution_days: float
    total_costs: float
    average_cost_per_request: float
    by_category: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
    costs_by_category: dict[str, float] = field(default_factory=dict)
    monthly_trends: list[MonthlyMaintenance] = field(default_factory=list)
    top_issues: list[MaintenanceIssue] = field(default_factory=list)

    report_type: ClassVar[ReportType] = ReportType.MAINTENANCE

    def summary(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "completed_requests": self.completed_requests,
            "pending_requests": self.pending_requests,
            "in_progress_requests": self.in_progress_requests,
            "completion_rate": self.completion_rate,
            "average_resolution_days": self.average_resolution_days,
            "total_costs": self.total_costs,
            "average_cost_per_request": self.average_cost_per_request,
        }

    def details(self) -> dict[str, Any]:
        return {
            "by_category": dict(self.by_category),
            "by_priority": dict(self.by_priority),
            "costs_by_category": dict(self.costs_by_category),
            "monthly_trends": [asdict(m) for m in self.monthly_trends],
            "top_issues": [asdict(i) for i in self.top_issues],
        }


@dataclass
class ComprehensivePayload:
    financial: FinancialPayload
    portfolio: PortfolioPayload
    tenant: TenantPayload
    maintenance: MaintenancePayload

    report_type: ClassVar[ReportType] = ReportType.COMPREHENSIVE

    def summary(self) -> dict[str, Any]:
        return {
            "total_revenue": self.financial.total_revenue,
            "total_expenses": self.financial.total_expenses,
            "net_income": self.financial.net_income,
            "collection_rate": self.financial.collection_rate,
            "total_properties": self.portfolio.total_properties,
            "occupancy_rate": self.portfolio.occupancy_rate,
            "portfolio_roi": self.portfolio.portfolio_roi,
            "active_tenants": self.tenant.active_tenants,
            "renewal_rate": self.tenant.renewal_rate,
            "maintenance_requests": self.maintenance.total_requests,
            "maintenance_costs": self.maintenance.total_costs,
        }

    def details(self) -> dict[str, Any]:
        return {
            "financial": {**self.financial.summary(), **self.financial.details()},
            "portfolio": {**self.portfolio.summary(), **self.portfolio.details()},
            "tenant": {**self.tenant.summary(), **self.tenant.details()},
            "maintenance": {**self.maintenance.summary(), **self.maintenance.details()},
        }


MetricsPayload = (
    FinancialPayload | PortfolioPayload | TenantPayload | MaintenancePayload | ComprehensivePayload
)
