"""
Raw ledger and portfolio records read from a data source.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from ..models import parse_instant


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    RECONCILED = "reconciled"


class LeaseStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    TERMINATED = "terminated"
    RENEWED = "renewed"


class MaintenanceStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Transactions excluded from every total
VOID_STATUSES = frozenset({TransactionStatus.CANCELLED, TransactionStatus.FAILED})

# Income categories that count as rent due
RENT_CATEGORIES = frozenset({"rent", "rent_payment"})

# Expense categories charged directly against property revenue
DIRECT_COST_CATEGORIES = frozenset({"maintenance", "repairs"})


@dataclass(frozen=True)
class Transaction:
    id: str
    date: datetime
    amount: float
    type: TransactionType
    category: str
    status: TransactionStatus = TransactionStatus.COMPLETED
    property_id: str | None = None
    reference: str | None = None
    description: str | None = None

    @property
    def signed_amount(self) -> float:
        """Amount with income positive and expenses negative."""
        return self.amount if self.type == TransactionType.INCOME else -self.amount

    @property
    def is_void(self) -> bool:
        return self.status in VOID_STATUSES

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        return cls(
            id=data["id"],
            date=parse_instant(data["date"]),
            amount=float(data["amount"]),
            type=TransactionType(data["type"]),
            category=data.get("category", "other"),
            status=TransactionStatus(data.get("status", "completed")),
            property_id=data.get("property_id"),
            reference=data.get("reference"),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class Property:
    id: str
    name: str
    value: float | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Property":
        return cls(id=data["id"], name=data.get("name", data["id"]), value=data.get("value"))


@dataclass(frozen=True)
class Unit:
    id: str
    property_id: str
    unit_type: str = "unknown"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Unit":
        return cls(
            id=data["id"],
            property_id=data["property_id"],
            unit_type=data.get("unit_type", "unknown"),
        )


@dataclass(frozen=True)
class Lease:
    id: str
    property_id: str
    unit_id: str
    tenant_id: str
    rent_amount: float
    status: LeaseStatus
    start_date: datetime
    end_date: datetime | None = None
    renewed: bool = False

    @property
    def is_active(self) -> bool:
        return self.status == LeaseStatus.ACTIVE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Lease":
        return cls(
            id=data["id"],
            property_id=data["property_id"],
            unit_id=data["unit_id"],
            tenant_id=data["tenant_id"],
            rent_amount=float(data.get("rent_amount", 0.0)),
            status=LeaseStatus(data.get("status", "active")),
            start_date=parse_instant(data["start_date"]),
            end_date=parse_instant(data.get("end_date")),
            renewed=bool(data.get("renewed", False)),
        )


@dataclass(frozen=True)
class Tenant:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tenant":
        return cls(id=data["id"], name=data.get("name", data["id"]))


@dataclass(frozen=True)
class MaintenanceRequest:
    id: str
    property_id: str
    category: str
    priority: str
    status: MaintenanceStatus
    created_at: datetime
    completed_at: datetime | None = None
    cost: float = 0.0
    title: str = ""

    @property
    def is_completed(self) -> bool:
        return self.status == MaintenanceStatus.COMPLETED

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MaintenanceRequest":
        return cls(
            id=data["id"],
            property_id=data["property_id"],
            category=data.get("category", "general"),
            priority=data.get("priority", "medium"),
            status=MaintenanceStatus(data.get("status", "pending")),
            created_at=parse_instant(data["created_at"]),
            completed_at=parse_instant(data.get("completed_at")),
            cost=float(data.get("cost", 0.0)),
            title=data.get("title", ""),
        )
