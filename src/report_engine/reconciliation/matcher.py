"""
Ledger-versus-statement reconciliation.

Each ReconciliationRecord covers one calendar month (UTC) and moves through:

    pending -> reconciled        |difference| < tolerance
    pending -> discrepancy       otherwise
    discrepancy -> reconciled    statement re-applied within tolerance, or resolved
    discrepancy -> disputed      dispute()
    disputed -> discrepancy      reopen()

Reconciled is final; a reconciled period is only redone by a new
start_period(). Every operation leaves the reconciled and unreconciled
transaction id sets disjoint, with a union equal to the ids captured when the
period started. Cancelled and failed transactions are part of that partition
but never count towards the ledger total or statement matching. Reaching
reconciled, by tolerance or by resolution, empties the unreconciled set.
"""

import copy
import logging
import re
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import fields
from datetime import UTC, datetime, timedelta
from typing import Any

from utils.logging import ContextLogger
from utils.metrics import ReconciliationMetrics
from utils.retry import retry_with_backoff
from utils.tracing import add_span_attributes, trace_operation

from ..analytics import round_money
from ..analytics.ledger import check_transaction
from ..config import RECONCILIATION_TOLERANCE
from ..datasource import DataSource, Transaction
from ..errors import (
    ConcurrentUpdateError,
    ConfigError,
    ReconciliationError,
    StateTransitionError,
)
from ..models import (
    DateRange,
    ReconciliationRecord,
    ReconciliationStatus,
    new_id,
    utc_now,
)
from ..store import RECONCILIATIONS, RecordStore
from .statement import ReferenceAmountMatcher, StatementEntry, StatementMatcher

logger = logging.getLogger(__name__)

_PERIOD_PATTERN = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")

# Statuses from which a statement may be applied
_APPLICABLE = frozenset({ReconciliationStatus.PENDING, ReconciliationStatus.DISCREPANCY})


def period_range(period: str) -> DateRange:
    """
    UTC calendar month of a "YYYY-MM" period key

    Raises:
        ConfigError: If the key is malformed
    """
    match = _PERIOD_PATTERN.match(period or "")
    if not match:
        raise ConfigError(f"Invalid period {period!r}, expected YYYY-MM")

    year, month = int(match.group(1)), int(match.group(2))
    start = datetime(year, month, 1, tzinfo=UTC)
    next_start = datetime(year + 1, 1, 1, tzinfo=UTC) if month == 12 else datetime(
        year, month + 1, 1, tzinfo=UTC
    )
    return DateRange(start, next_start - timedelta(microseconds=1))


def check_partition(record: ReconciliationRecord, expected_ids: set[str] | None = None) -> None:
    """
    Verify the transaction id partition of a record

    Args:
        record: Record to check
        expected_ids: Id universe the two sets must still cover

    Raises:
        ReconciliationError: If the sets overlap or no longer cover expected_ids
    """
    overlap = record.reconciled_transaction_ids & record.unreconciled_transaction_ids
    if overlap:
        raise ReconciliationError(
            f"Reconciliation {record.id} has transactions in both sets: "
            f"{', '.join(sorted(overlap))}"
        )

    if expected_ids is not None and record.transaction_ids != expected_ids:
        missing = expected_ids - record.transaction_ids
        extra = record.transaction_ids - expected_ids
        raise ReconciliationError(
            f"Reconciliation {record.id} transaction set changed "
            f"(missing: {sorted(missing)}, unexpected: {sorted(extra)})"
        )


def _sync(target: ReconciliationRecord, source: ReconciliationRecord) -> None:
    for f in fields(ReconciliationRecord):
        setattr(target, f.name, getattr(source, f.name))


class ReconciliationMatcher:
    """
    Drives reconciliation records through their lifecycle

    With a store, every operation is a read-modify-write on the stored record
    committed by compare-and-swap and retried on a version conflict; the
    passed record is refreshed with the committed state. Without a store the
    matcher works on the passed records alone.
    """

    def __init__(
        self,
        store: RecordStore | None = None,
        statement_matcher: StatementMatcher | None = None,
        tolerance: float = RECONCILIATION_TOLERANCE,
        data_source: DataSource | None = None,
        metrics: ReconciliationMetrics | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize matcher

        Args:
            store: Optional record store for persisted periods
            statement_matcher: Per-transaction matcher (default: ReferenceAmountMatcher)
            tolerance: Absolute difference below which a period is reconciled
            data_source: Ledger used when no snapshot or ledger entries are passed
            metrics: Optional reconciliation metrics
            clock: Source of the current instant
        """
        if tolerance < 0:
            raise ConfigError("tolerance cannot be negative")

        self.store = store
        self.statement_matcher = statement_matcher or ReferenceAmountMatcher()
        self.tolerance = tolerance
        self.data_source = data_source
        self.metrics = metrics
        self.clock = clock

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def start_period(
        self,
        period: str,
        ledger_snapshot: Iterable[Transaction] | None = None,
        property_id: str | None = None,
    ) -> ReconciliationRecord:
        """
        Open a reconciliation for one calendar month

        Args:
            period: Month key "YYYY-MM" (UTC)
            ledger_snapshot: Ledger transactions to reconcile; read from the
                data source when omitted
            property_id: Restrict the ledger to one property

        Returns:
            Pending record with every in-period transaction unreconciled

        Raises:
            ConfigError: For a malformed period or when no ledger is available
        """
        date_range = period_range(period)
        transactions = self._period_transactions(date_range, ledger_snapshot, property_id)

        record = ReconciliationRecord(
            id=new_id("rec"),
            period=period,
            property_id=property_id,
            ledger_total=round_money(sum(t.signed_amount for t in transactions if not t.is_void)),
            unreconciled_transaction_ids={t.id for t in transactions},
            created_at=self.clock(),
        )
        check_partition(record)

        with trace_operation(
            "reconciliation_start",
            record_id=record.id,
            period=period,
            property_id=property_id,
        ):
            add_span_attributes(transactions=len(transactions), ledger_total=record.ledger_total)
            if self.store is not None:
                stored = self.store.create(RECONCILIATIONS, record.to_dict())
                record.version = stored["version"]

        self._record(record, "start")
        ContextLogger(__name__, record_id=record.id, period=period).info(
            f"Started reconciliation for {period}: {len(transactions)} transactions, "
            f"ledger total {record.ledger_total:.2f}"
        )
        return record

    def apply_statement(
        self,
        record: ReconciliationRecord,
        statement_total: float,
        statement_entries: Sequence[StatementEntry] = (),
        ledger_entries: Sequence[Transaction] | None = None,
        reconciled_by: str | None = None,
    ) -> ReconciliationRecord:
        """
        Compare the ledger total with an external statement total

        When statement lines are supplied, the still-unreconciled ledger
        transactions are matched against them: matched ids move to the
        reconciled set and the outstanding mismatches replace the record's
        discrepancy list.

        Args:
            record: Pending or discrepancy record
            statement_total: External statement total for the period
            statement_entries: Optional statement lines for per-transaction matching
            ledger_entries: Ledger transactions to match; read from the data
                source when omitted
            reconciled_by: User applying the statement

        Returns:
            Record with status reconciled or discrepancy

        Raises:
            StateTransitionError: If the record is reconciled or disputed
        """
        raw_total = float(statement_total)
        candidates = None
        if statement_entries:
            candidates = self._ledger_entries(record, ledger_entries)

        def change(current: ReconciliationRecord) -> None:
            if current.status not in _APPLICABLE:
                raise StateTransitionError(
                    f"Cannot apply a statement to reconciliation {current.id} "
                    f"in status {current.status.value}"
                )

            current.statement_total = round_money(raw_total)
            current.difference = round_money(current.ledger_total - raw_total)

            if candidates is not None:
                outstanding = [
                    t for t in candidates if t.id in current.unreconciled_transaction_ids
                ]
                result = self.statement_matcher.match(outstanding, list(statement_entries))
                unknown = result.matched_ids - current.unreconciled_transaction_ids
                if unknown:
                    raise ReconciliationError(
                        f"Statement matcher returned unknown transactions: {sorted(unknown)}"
                    )
                current.reconciled_transaction_ids |= result.matched_ids
                current.unreconciled_transaction_ids -= result.matched_ids
                current.discrepancies = list(result.discrepancies)

            # Tolerance applies to the unrounded statement total
            if abs(current.ledger_total - raw_total) < self.tolerance:
                current.reconciled_transaction_ids |= current.unreconciled_transaction_ids
                current.unreconciled_transaction_ids = set()
                current.status = ReconciliationStatus.RECONCILED
                current.completed_at = self.clock()
            else:
                current.status = ReconciliationStatus.DISCREPANCY

            if reconciled_by:
                current.reconciled_by = reconciled_by

        return self._commit(record, "apply_statement", change)

    def resolve_discrepancy(
        self,
        record: ReconciliationRecord,
        note: str,
        resolved_by: str | None = None,
    ) -> ReconciliationRecord:
        """
        Accept a discrepancy after manual review

        Appends "Resolution: <note>" to the notes and moves every remaining
        unreconciled transaction to the reconciled set.

        Raises:
            StateTransitionError: Unless the record is in discrepancy
        """
        def change(current: ReconciliationRecord) -> None:
            self._require(current, ReconciliationStatus.DISCREPANCY, "resolve")
            current.append_note(f"Resolution: {note}")
            current.reconciled_transaction_ids |= current.unreconciled_transaction_ids
            current.unreconciled_transaction_ids = set()
            current.status = ReconciliationStatus.RECONCILED
            current.completed_at = self.clock()
            if resolved_by:
                current.reconciled_by = resolved_by

        return self._commit(record, "resolve", change)

    def dispute(self, record: ReconciliationRecord, reason: str) -> ReconciliationRecord:
        """
        Escalate a discrepancy to the statement issuer

        Raises:
            StateTransitionError: Unless the record is in discrepancy
        """
        def change(current: ReconciliationRecord) -> None:
            self._require(current, ReconciliationStatus.DISCREPANCY, "dispute")
            current.append_note(f"Dispute: {reason}")
            current.status = ReconciliationStatus.DISPUTED

        return self._commit(record, "dispute", change)

    def reopen(self, record: ReconciliationRecord, note: str) -> ReconciliationRecord:
        """
        Return a disputed record to discrepancy

        Raises:
            StateTransitionError: Unless the record is disputed
        """
        def change(current: ReconciliationRecord) -> None:
            self._require(current, ReconciliationStatus.DISPUTED, "reopen")
            current.append_note(f"Reopened: {note}")
            current.status = ReconciliationStatus.DISCREPANCY

        return self._commit(record, "reopen", change)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> ReconciliationRecord:
        return ReconciliationRecord.from_dict(self._require_store().get(RECONCILIATIONS, record_id))

    def list_records(
        self,
        period: str | None = None,
        status: ReconciliationStatus | str | None = None,
    ) -> list[ReconciliationRecord]:
        """Stored records, optionally filtered by period and status, ordered by (period, id)."""
        status = ReconciliationStatus(status) if status else None

        def wanted(doc: dict[str, Any]) -> bool:
            if period and doc["period"] != period:
                return False
            return status is None or doc["status"] == status.value

        records = [
            ReconciliationRecord.from_dict(d)
            for d in self._require_store().list(RECONCILIATIONS, wanted)
        ]
        return sorted(records, key=lambda r: (r.period, r.id))

    @staticmethod
    def summarize(records: Iterable[ReconciliationRecord]) -> dict[str, Any]:
        """
        Roll up a set of records

        Returns:
            Dictionary with the record count, counts per status (every status
            present), open count (anything not reconciled) and the total
            absolute difference
        """
        records = list(records)
        counts = Counter(ReconciliationStatus(r.status).value for r in records)
        by_status = {status.value: counts.get(status.value, 0) for status in ReconciliationStatus}

        return {
            "total": len(records),
            "by_status": by_status,
            "open": len(records) - by_status[ReconciliationStatus.RECONCILED.value],
            "total_absolute_difference": round_money(sum(abs(r.difference) for r in records)),
            "unreconciled_transactions": sum(len(r.unreconciled_transaction_ids) for r in records),
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _require(record: ReconciliationRecord, status: ReconciliationStatus, action: str) -> None:
        if record.status != status:
            raise StateTransitionError(
                f"Cannot {action} reconciliation {record.id} in status "
                f"{ReconciliationStatus(record.status).value}; it must be {status.value}"
            )

    def _require_store(self) -> RecordStore:
        if self.store is None:
            raise ConfigError("This operation needs a record store")
        return self.store

    def _period_transactions(
        self,
        date_range: DateRange,
        ledger_snapshot: Iterable[Transaction] | None,
        property_id: str | None,
    ) -> list[Transaction]:
        if ledger_snapshot is None:
            if self.data_source is None:
                raise ConfigError("No ledger snapshot given and no data source configured")
            ledger_snapshot = self.data_source.transactions(
                date_range.start, date_range.end, [property_id] if property_id else None
            )

        # Void rows stay in the id partition; callers drop them from totals
        selected = []
        for transaction in ledger_snapshot:
            check_transaction(transaction)
            if not date_range.contains(transaction.date):
                continue
            if property_id and transaction.property_id != property_id:
                continue
            selected.append(transaction)
        return sorted(selected, key=lambda t: (t.date, t.id))

    def _ledger_entries(
        self,
        record: ReconciliationRecord,
        ledger_entries: Sequence[Transaction] | None,
    ) -> list[Transaction]:
        if ledger_entries is None:
            if self.data_source is None:
                raise ConfigError(
                    "Statement lines need ledger entries or a configured data source"
                )
            ledger_entries = self._period_transactions(
                period_range(record.period), None, record.property_id
            )
        return [
            t for t in ledger_entries if t.id in record.transaction_ids and not t.is_void
        ]

    def _commit(
        self,
        record: ReconciliationRecord,
        operation: str,
        change: Callable[[ReconciliationRecord], None],
    ) -> ReconciliationRecord:
        """Apply `change` to a working copy, check the partition and persist it."""
        with trace_operation(
            f"reconciliation_{operation}",
            record_id=record.id,
            period=record.period,
        ):
            if self.store is None:
                current = copy.deepcopy(record)
                expected = current.transaction_ids
                change(current)
                check_partition(current, expected)
            else:
                current = self._commit_stored(record.id, change)

            add_span_attributes(status=current.status.value, difference=current.difference)

        _sync(record, current)
        self._record(record, operation)

        ContextLogger(__name__, record_id=record.id, period=record.period).info(
            f"Reconciliation {record.id} {operation}: status {record.status.value}, "
            f"difference {record.difference:.2f}"
        )
        return record

    @retry_with_backoff(
        max_retries=5,
        base_delay=0.05,
        max_delay=1.0,
        retryable_exceptions=(ConcurrentUpdateError,),
    )
    def _commit_stored(
        self,
        record_id: str,
        change: Callable[[ReconciliationRecord], None],
    ) -> ReconciliationRecord:
        current = ReconciliationRecord.from_dict(self.store.get(RECONCILIATIONS, record_id))
        expected = current.transaction_ids
        change(current)
        check_partition(current, expected)

        stored = self.store.update_if_version(RECONCILIATIONS, current.to_dict(), current.version)
        current.version = stored["version"]
        return current

    def _record(self, record: ReconciliationRecord, operation: str) -> None:
        if not self.metrics:
            return
        self.metrics.record_operation(
            operation,
            record.status.value,
            record.period,
            record.difference,
            discrepancies=len(record.discrepancies) if operation == "apply_statement" else 0,
        )
