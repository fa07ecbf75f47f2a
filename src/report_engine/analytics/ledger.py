"""
Validated record selection shared by the aggregations.
"""

import math

from ..datasource import DataSource, MaintenanceRequest, Transaction, TransactionType
from ..errors import AggregationError
from ..models import DateRange, ReportFilters


def check_transaction(transaction: Transaction) -> None:
    """
    Reject transactions the aggregations cannot interpret

    Raises:
        AggregationError: For unknown types and negative or non-finite amounts
    """
    if transaction.type not in (TransactionType.INCOME, TransactionType.EXPENSE):
        raise AggregationError(
            f"Transaction {transaction.id} has unknown type {transaction.type!r}"
        )
    if not math.isfinite(transaction.amount) or transaction.amount < 0:
        raise AggregationError(
            f"Transaction {transaction.id} has invalid amount {transaction.amount!r}"
        )


def check_maintenance_request(request: MaintenanceRequest) -> None:
    if request.completed_at is not None and request.completed_at < request.created_at:
        raise AggregationError(
            f"Maintenance request {request.id} completed before it was created"
        )
    if not math.isfinite(request.cost) or request.cost < 0:
        raise AggregationError(
            f"Maintenance request {request.id} has invalid cost {request.cost!r}"
        )


def _passes_filters(transaction: Transaction, filters: ReportFilters) -> bool:
    if filters.categories is not None and transaction.category not in filters.categories:
        return False
    if filters.min_amount is not None and transaction.amount < filters.min_amount:
        return False
    if filters.max_amount is not None and transaction.amount > filters.max_amount:
        return False
    return True


def effective_transactions(
    source: DataSource,
    date_range: DateRange,
    filters: ReportFilters | None = None,
) -> list[Transaction]:
    """
    Transactions counted in totals: dated in range, not cancelled or failed,
    and passing the report filters. Ordered by (date, id).
    """
    filters = filters or ReportFilters()
    selected = []

    for transaction in source.transactions(
        date_range.start, date_range.end, filters.property_ids
    ):
        check_transaction(transaction)
        if transaction.is_void or not date_range.contains(transaction.date):
            continue
        if _passes_filters(transaction, filters):
            selected.append(transaction)

    return sorted(selected, key=lambda t: (t.date, t.id))


def maintenance_in_range(
    source: DataSource,
    date_range: DateRange,
    property_ids: list[str] | None = None,
) -> list[MaintenanceRequest]:
    """Maintenance requests created within the range, ordered by (created_at, id)."""
    requests = []

    for request in source.maintenance_requests(property_ids):
        check_maintenance_request(request)
        if date_range.contains(request.created_at):
            requests.append(request)

    return sorted(requests, key=lambda m: (m.created_at, m.id))


def split_totals(transactions: list[Transaction]) -> tuple[float, float]:
    """(income, expenses) as positive sums."""
    income = sum(t.amount for t in transactions if t.type == TransactionType.INCOME)
    expenses = sum(t.amount for t in transactions if t.type == TransactionType.EXPENSE)
    return income, expenses
