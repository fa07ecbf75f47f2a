"""
Bank statement lines and per-transaction matching.

A StatementMatcher pairs ledger transactions with statement lines. Paired
transactions with equal amounts count as matched; everything else becomes a
Discrepancy describing which side is missing or how the amounts differ.
"""

import csv
import logging
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from ..analytics import round_money
from ..datasource import Transaction
from ..errors import ConfigError
from ..models import Discrepancy, parse_instant

logger = logging.getLogger(__name__)

STATEMENT_COLUMNS = ("reference", "date", "amount", "description")

MISSING_FROM_STATEMENT = "missing_from_statement"
MISSING_FROM_LEDGER = "missing_from_ledger"
AMOUNT_MISMATCH = "amount_mismatch"


@dataclass(frozen=True)
class StatementEntry:
    """One line of an external statement; deposits positive, withdrawals negative."""

    reference: str | None
    date: datetime
    amount: float
    description: str = ""


@dataclass
class MatchResult:
    matched_ids: set[str] = field(default_factory=set)
    discrepancies: list[Discrepancy] = field(default_factory=list)


class StatementMatcher(ABC):
    """Pairs ledger transactions with statement lines."""

    @abstractmethod
    def match(
        self,
        ledger_entries: Sequence[Transaction],
        statement_entries: Sequence[StatementEntry],
    ) -> MatchResult:
        """
        Match ledger entries against statement entries

        Returns:
            MatchResult whose matched_ids is a subset of the ledger ids
        """


class ReferenceAmountMatcher(StatementMatcher):
    """
    Default matcher: pair by reference first, then by exact amount

    A ledger transaction whose reference appears on the statement is paired
    with that line whatever the amounts; differing amounts give an
    amount_mismatch discrepancy. Transactions without a reference pair with
    the earliest unused line of the same signed amount dated within
    `date_window` of the transaction.
    """

    def __init__(self, date_window: timedelta = timedelta(days=3)):
        self.date_window = date_window

    def match(
        self,
        ledger_entries: Sequence[Transaction],
        statement_entries: Sequence[StatementEntry],
    ) -> MatchResult:
        result = MatchResult()
        unused = list(range(len(statement_entries)))
        by_reference = {}
        for index, entry in enumerate(statement_entries):
            if entry.reference:
                by_reference.setdefault(entry.reference, index)

        pending = []
        for transaction in sorted(ledger_entries, key=lambda t: (t.date, t.id)):
            index = by_reference.get(transaction.reference) if transaction.reference else None
            if index is None or index not in unused:
                pending.append(transaction)
                continue

            unused.remove(index)
            self._pair(result, transaction, statement_entries[index])

        for transaction in pending:
            index = self._find_by_amount(transaction, statement_entries, unused)
            if index is None:
                result.discrepancies.append(Discrepancy(
                    transaction_id=transaction.id,
                    ledger_amount=round_money(transaction.signed_amount),
                    statement_amount=0.0,
                    difference=round_money(transaction.signed_amount),
                    reason=MISSING_FROM_STATEMENT,
                ))
                continue

            unused.remove(index)
            result.matched_ids.add(transaction.id)

        for index in unused:
            entry = statement_entries[index]
            result.discrepancies.append(Discrepancy(
                transaction_id=entry.reference or f"statement-line-{index + 1}",
                ledger_amount=0.0,
                statement_amount=round_money(entry.amount),
                difference=round_money(-entry.amount),
                reason=MISSING_FROM_LEDGER,
            ))

        logger.debug(
            f"Matched {len(result.matched_ids)} of {len(ledger_entries)} ledger entries, "
            f"{len(result.discrepancies)} discrepancies"
        )
        return result

    @staticmethod
    def _pair(result: MatchResult, transaction: Transaction, entry: StatementEntry) -> None:
        ledger_amount = round_money(transaction.signed_amount)
        statement_amount = round_money(entry.amount)

        if ledger_amount == statement_amount:
            result.matched_ids.add(transaction.id)
            return

        result.discrepancies.append(Discrepancy(
            transaction_id=transaction.id,
            ledger_amount=ledger_amount,
            statement_amount=statement_amount,
            difference=round_money(ledger_amount - statement_amount),
            reason=AMOUNT_MISMATCH,
        ))

    def _find_by_amount(
        self,
        transaction: Transaction,
        statement_entries: Sequence[StatementEntry],
        unused: list[int],
    ) -> int | None:
        amount = round_money(transaction.signed_amount)
        candidates = [
            index for index in unused
            if round_money(statement_entries[index].amount) == amount
            and abs(statement_entries[index].date - transaction.date) <= self.date_window
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda i: (statement_entries[i].date, i))


def load_statement_csv(path: str | Path) -> list[StatementEntry]:
    """
    Read statement lines from a CSV file

    The file needs a header row with reference, date, amount and description
    columns. Dates without an offset are taken as UTC.

    Args:
        path: CSV file path

    Returns:
        Statement entries in file order

    Raises:
        ConfigError: If the file is missing, lacks columns or has bad values
    """
    path = Path(path)
    entries = []

    try:
        with open(path, newline="") as f:
            reader = csv.DictReader(f)
            missing = set(STATEMENT_COLUMNS) - set(reader.fieldnames or [])
            if missing:
                raise ConfigError(
                    f"Statement {path} is missing columns: {', '.join(sorted(missing))}"
                )

            for line_number, row in enumerate(reader, start=2):
                try:
                    if not (row["date"] or "").strip():
                        raise ValueError("date is required")
                    entries.append(StatementEntry(
                        reference=(row["reference"] or "").strip() or None,
                        date=parse_instant(row["date"].strip()),
                        amount=float(row["amount"]),
                        description=(row["description"] or "").strip(),
                    ))
                except (TypeError, ValueError, AttributeError) as e:
                    raise ConfigError(f"Statement {path} line {line_number}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read statement {path}: {e}") from e

    logger.info(f"Loaded {len(entries)} statement lines from {path}")
    return entries


def statement_total(entries: Sequence[StatementEntry]) -> float:
    return round_money(sum(entry.amount for entry in entries))
