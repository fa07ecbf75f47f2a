"""
Domain records for scheduled reports, report runs and reconciliations.

All instants are timezone-aware UTC datetimes. Records round-trip through
plain dictionaries (to_dict / from_dict) so any record store can persist them
as JSON documents.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from .errors import ConfigError, StateTransitionError


class Frequency(str, Enum):
    """Recurrence of a scheduled report."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class ReportType(str, Enum):
    """Kinds of report the analytics aggregator can produce."""

    PORTFOLIO = "portfolio"
    FINANCIAL = "financial"
    TENANT = "tenant"
    MAINTENANCE = "maintenance"
    COMPREHENSIVE = "comprehensive"


class DateRangeSelector(str, Enum):
    """Relative reporting window, resolved against the run time."""

    LAST_MONTH = "last_month"
    LAST_QUARTER = "last_quarter"
    LAST_YEAR = "last_year"
    YTD = "ytd"
    LAST_7_DAYS = "last_7_days"
    LAST_30_DAYS = "last_30_days"


class OutputFormat(str, Enum):
    """Artifact formats a renderer can be asked for."""

    PDF = "pdf"
    CSV = "csv"
    JSON = "json"

    @classmethod
    def parse_many(cls, value: "str | list[str] | list[OutputFormat]") -> list["OutputFormat"]:
        """
        Parse a format selection

        Accepts a comma-separated string or a list. "both" expands to pdf and
        csv, matching the report settings screen.

        Raises:
            ConfigError: On unknown formats or an empty selection
        """
        items = value.split(",") if isinstance(value, str) else list(value)
        formats: list[OutputFormat] = []

        for item in items:
            name = item.value if isinstance(item, OutputFormat) else str(item).strip().lower()
            if not name:
                continue
            expanded = [cls.PDF, cls.CSV] if name == "both" else None
            if expanded is None:
                try:
                    expanded = [cls(name)]
                except ValueError as e:
                    raise ConfigError(f"Unknown output format: {name!r}") from e
            for fmt in expanded:
                if fmt not in formats:
                    formats.append(fmt)

        if not formats:
            raise ConfigError("At least one output format is required")

        return formats


class RunStatus(str, Enum):
    """Lifecycle of a generated report run."""

    GENERATING = "generating"
    COMPLETED = "completed"
    FAILED = "failed"
    SENT = "sent"


class ReconciliationStatus(str, Enum):
    """Lifecycle of a reconciliation period."""

    PENDING = "pending"
    RECONCILED = "reconciled"
    DISCREPANCY = "discrepancy"
    DISPUTED = "disputed"


def utc_now() -> datetime:
    """Current instant in UTC."""
    return datetime.now(UTC)


def new_id(prefix: str) -> str:
    """Generate a short unique record identifier."""
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def to_utc(value: datetime) -> datetime:
    """
    Normalise a datetime to aware UTC

    Raises:
        ConfigError: If the datetime is naive
    """
    if value.tzinfo is None:
        raise ConfigError(f"Naive datetime is not allowed: {value.isoformat()}")
    return value.astimezone(UTC)


def parse_instant(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 string into an aware UTC datetime; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def format_instant(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass(frozen=True)
class DateRange:
    """Inclusive reporting window [start, end]."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ConfigError("Date range bounds must be timezone-aware")
        if self.end < self.start:
            raise ConfigError(
                f"Date range end {self.end.isoformat()} is before start {self.start.isoformat()}"
            )

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end

    @property
    def length(self) -> timedelta:
        """Span of the inclusive window."""
        return self.end - self.start + timedelta(microseconds=1)

    def previous(self) -> "DateRange":
        """Equal-length window ending immediately before this one."""
        return DateRange(self.start - self.length, self.start - timedelta(microseconds=1))

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DateRange":
        return cls(parse_instant(data["start"]), parse_instant(data["end"]))


@dataclass
class ScheduleConfig:
    """Human recurrence rule: frequency, day selector, time of day and timezone."""

    frequency: Frequency
    time: str
    timezone: str = "UTC"
    day_of_week: int | None = None  # 0 = Sunday ... 6 = Saturday
    day_of_month: int | None = None  # 1-31, clamped to short months

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequency": Frequency(self.frequency).value,
            "time": self.time,
            "timezone": self.timezone,
            "day_of_week": self.day_of_week,
            "day_of_month": self.day_of_month,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduleConfig":
        return cls(
            frequency=Frequency(data["frequency"]),
            time=data["time"],
            timezone=data.get("timezone", "UTC"),
            day_of_week=data.get("day_of_week"),
            day_of_month=data.get("day_of_month"),
        )


@dataclass
class ReportFilters:
    """Optional narrowing of the data a report covers."""

    property_ids: list[str] | None = None
    categories: list[str] | None = None
    min_amount: float | None = None
    max_amount: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "property_ids": self.property_ids,
            "categories": self.categories,
            "min_amount": self.min_amount,
            "max_amount": self.max_amount,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ReportFilters":
        data = data or {}
        return cls(
            property_ids=data.get("property_ids"),
            categories=data.get("categories"),
            min_amount=data.get("min_amount"),
            max_amount=data.get("max_amount"),
        )


@dataclass
class ReportSettings:
    """What a scheduled report covers and how it is delivered."""

    date_range: DateRangeSelector = DateRangeSelector.LAST_MONTH
    formats: list[OutputFormat] = field(default_factory=lambda: [OutputFormat.JSON])
    include_charts: bool = True
    include_raw_data: bool = False
    filters: ReportFilters = field(default_factory=ReportFilters)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date_range": DateRangeSelector(self.date_range).value,
            "formats": [OutputFormat(f).value for f in self.formats],
            "include_charts": self.include_charts,
            "include_raw_data": self.include_raw_data,
            "filters": self.filters.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReportSettings":
        return cls(
            date_range=DateRangeSelector(data.get("date_range", "last_month")),
            formats=OutputFormat.parse_many(data.get("formats", ["json"])),
            include_charts=data.get("include_charts", True),
            include_raw_data=data.get("include_raw_data", False),
            filters=ReportFilters.from_dict(data.get("filters")),
        )


@dataclass
class Recipient:
    email: str
    name: str = ""
    role: str = ""

    def to_dict(self) -> dict[str, str]:
        return {"email": self.email, "name": self.name, "role": self.role}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Recipient":
        return cls(email=data["email"], name=data.get("name", ""), role=data.get("role", ""))


@dataclass
class ScheduledReportJob:
    """A recurring report definition and its scheduling state."""

    id: str
    name: str
    report_type: ReportType
    schedule: ScheduleConfig
    settings: ReportSettings
    recipients: list[Recipient]
    next_run: datetime
    is_active: bool = True
    last_run: datetime | None = None
    description: str = ""
    created_by: str = "system"
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    version: int = 0

    @property
    def recipient_emails(self) -> list[str]:
        return [r.email for r in self.recipients]

    def is_due(self, now: datetime) -> bool:
        return self.is_active and self.next_run <= now

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "report_type": ReportType(self.report_type).value,
            "schedule": self.schedule.to_dict(),
            "settings": self.settings.to_dict(),
            "recipients": [r.to_dict() for r in self.recipients],
            "is_active": self.is_active,
            "last_run": format_instant(self.last_run),
            "next_run": format_instant(self.next_run),
            "created_by": self.created_by,
            "created_at": format_instant(self.created_at),
            "updated_at": format_instant(self.updated_at),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScheduledReportJob":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            report_type=ReportType(data["report_type"]),
            schedule=ScheduleConfig.from_dict(data["schedule"]),
            settings=ReportSettings.from_dict(data.get("settings", {})),
            recipients=[Recipient.from_dict(r) for r in data.get("recipients", [])],
            is_active=data.get("is_active", True),
            last_run=parse_instant(data.get("last_run")),
            next_run=parse_instant(data["next_run"]),
            created_by=data.get("created_by", "system"),
            created_at=parse_instant(data.get("created_at")) or utc_now(),
            updated_at=parse_instant(data.get("updated_at")) or utc_now(),
            version=data.get("version", 0),
        )


@dataclass
class RunMetadata:
    record_count: int = 0
    byte_size: int = 0
    processing_time_ms: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "record_count": self.record_count,
            "byte_size": self.byte_size,
            "processing_time_ms": self.processing_time_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "RunMetadata":
        data = data or {}
        return cls(
            record_count=data.get("record_count", 0),
            byte_size=data.get("byte_size", 0),
            processing_time_ms=data.get("processing_time_ms", 0),
        )


_RUN_TRANSITIONS = {
    RunStatus.GENERATING: {RunStatus.COMPLETED, RunStatus.FAILED},
    RunStatus.COMPLETED: {RunStatus.SENT, RunStatus.FAILED},
    RunStatus.SENT: set(),
    RunStatus.FAILED: set(),
}


@dataclass
class GeneratedReportRun:
    """One execution attempt of a report, scheduled or manual."""

    id: str
    name: str
    report_type: ReportType
    date_range: DateRange
    status: RunStatus = RunStatus.GENERATING
    scheduled_report_id: str | None = None
    data: dict[str, Any] = field(default_factory=lambda: {"summary": {}, "details": {}})
    artifacts: dict[str, str] = field(default_factory=dict)
    recipients: list[str] = field(default_factory=list)
    error: str | None = None
    metadata: RunMetadata = field(default_factory=RunMetadata)
    generated_by: str = "system"
    generated_at: datetime = field(default_factory=utc_now)
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        if self.status in (RunStatus.FAILED, RunStatus.SENT):
            return True
        return self.status == RunStatus.COMPLETED and not self.recipients

    def transition(self, new_status: RunStatus) -> None:
        """
        Advance the run status

        Raises:
            StateTransitionError: If the run is terminal or the move is not allowed
        """
        new_status = RunStatus(new_status)

        if self.is_terminal:
            raise StateTransitionError(
                f"Run {self.id} is {self.status.value} and cannot move to {new_status.value}"
            )
        if new_status not in _RUN_TRANSITIONS[self.status]:
            raise StateTransitionError(
                f"Run {self.id} cannot move from {self.status.value} to {new_status.value}"
            )

        self.status = new_status

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "scheduled_report_id": self.scheduled_report_id,
            "report_type": ReportType(self.report_type).value,
            "date_range": self.date_range.to_dict(),
            "status": RunStatus(self.status).value,
            "data": self.data,
            "artifacts": dict(self.artifacts),
            "recipients": list(self.recipients),
            "error": self.error,
            "metadata": self.metadata.to_dict(),
            "generated_by": self.generated_by,
            "generated_at": format_instant(self.generated_at),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GeneratedReportRun":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            scheduled_report_id=data.get("scheduled_report_id"),
            report_type=ReportType(data["report_type"]),
            date_range=DateRange.from_dict(data["date_range"]),
            status=RunStatus(data.get("status", "generating")),
            data=data.get("data") or {"summary": {}, "details": {}},
            artifacts=dict(data.get("artifacts", {})),
            recipients=list(data.get("recipients", [])),
            error=data.get("error"),
            metadata=RunMetadata.from_dict(data.get("metadata")),
            generated_by=data.get("generated_by", "system"),
            generated_at=parse_instant(data.get("generated_at")) or utc_now(),
            version=data.get("version", 0),
        )


@dataclass
class ReportRequest:
    """Parameters of a manual (non-scheduled) report generation."""

    name: str
    date_range: DateRange
    formats: list[OutputFormat] = field(default_factory=lambda: [OutputFormat.PDF])
    recipients: list[str] = field(default_factory=list)
    filters: ReportFilters = field(default_factory=ReportFilters)
    include_charts: bool = True
    include_raw_data: bool = False


@dataclass
class Discrepancy:
    """Per-transaction mismatch between ledger and statement."""

    transaction_id: str
    ledger_amount: float
    statement_amount: float
    difference: float
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "ledger_amount": self.ledger_amount,
            "statement_amount": self.statement_amount,
            "difference": self.difference,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Discrepancy":
        return cls(
            transaction_id=data["transaction_id"],
            ledger_amount=data["ledger_amount"],
            statement_amount=data["statement_amount"],
            difference=data["difference"],
            reason=data.get("reason"),
        )


@dataclass
class ReconciliationRecord:
    """Ledger-versus-statement check for one calendar month."""

    id: str
    period: str
    ledger_total: float
    statement_total: float = 0.0
    difference: float = 0.0
    status: ReconciliationStatus = ReconciliationStatus.PENDING
    reconciled_transaction_ids: set[str] = field(default_factory=set)
    unreconciled_transaction_ids: set[str] = field(default_factory=set)
    discrepancies: list[Discrepancy] = field(default_factory=list)
    property_id: str | None = None
    notes: str | None = None
    reconciled_by: str | None = None
    created_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None
    version: int = 0

    @property
    def transaction_ids(self) -> set[str]:
        return self.reconciled_transaction_ids | self.unreconciled_transaction_ids

    def append_note(self, note: str) -> None:
        self.notes = f"{self.notes}\n{note}" if self.notes else note

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "period": self.period,
            "property_id": self.property_id,
            "ledger_total": self.ledger_total,
            "statement_total": self.statement_total,
            "difference": self.difference,
            "status": ReconciliationStatus(self.status).value,
            "reconciled_transaction_ids": sorted(self.reconciled_transaction_ids),
            "unreconciled_transaction_ids": sorted(self.unreconciled_transaction_ids),
            "discrepancies": [d.to_dict() for d in self.discrepancies],
            "notes": self.notes,
            "reconciled_by": self.reconciled_by,
            "created_at": format_instant(self.created_at),
            "completed_at": format_instant(self.completed_at),
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReconciliationRecord":
        return cls(
            id=data["id"],
            period=data["period"],
            property_id=data.get("property_id"),
            ledger_total=data["ledger_total"],
            statement_total=data.get("statement_total", 0.0),
            difference=data.get("difference", 0.0),
            status=ReconciliationStatus(data.get("status", "pending")),
            reconciled_transaction_ids=set(data.get("reconciled_transaction_ids", [])),
            unreconciled_transaction_ids=set(data.get("unreconciled_transaction_ids", [])),
            discrepancies=[Discrepancy.from_dict(d) for d in data.get("discrepancies", [])],
            notes=data.get("notes"),
            reconciled_by=data.get("reconciled_by"),
            created_at=parse_instant(data.get("created_at")) or utc_now(),
            completed_at=parse_instant(data.get("completed_at")),
            version=data.get("version", 0),
        )
