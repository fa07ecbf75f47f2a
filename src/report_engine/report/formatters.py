"""
Console formatting for report runs and reconciliation records.
"""

from collections.abc import Iterable
from typing import Any

from ..models import GeneratedReportRun, ReconciliationRecord, ScheduledReportJob

WIDTH = 80


def _format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:,.2f}"
    if isinstance(value, int) and not isinstance(value, bool):
        return f"{value:,}"
    return str(value)


def _label(key: str) -> str:
    return key.replace("_", " ").title()


def format_run_console(run: GeneratedReportRun) -> str:
    """
    Format a report run for console output

    Args:
        run: Report run to display

    Returns:
        Formatted string for console display
    """
    lines = []

    lines.append("=" * WIDTH)
    lines.append(f"REPORT: {run.name}")
    lines.append("=" * WIDTH)
    lines.append(f"Run ID: {run.id}")
    lines.append(f"Type: {run.report_type.value}")
    lines.append(f"Status: {run.status.value}")
    lines.append(f"Period: {run.date_range.start.isoformat()} - {run.date_range.end.isoformat()}")
    lines.append(f"Generated: {run.generated_at.isoformat()} by {run.generated_by}")
    if run.scheduled_report_id:
        lines.append(f"Scheduled Job: {run.scheduled_report_id}")
    lines.append("")

    if run.error:
        lines.append("ERROR")
        lines.append("-" * WIDTH)
        lines.append(run.error)
        lines.append("")

    summary = run.data.get("summary", {})
    if summary:
        lines.append("SUMMARY")
        lines.append("-" * WIDTH)
        for key, value in summary.items():
            lines.append(f"{_label(key)}: {_format_value(value)}")
        lines.append("")

    if run.artifacts:
        lines.append("ARTIFACTS")
        lines.append("-" * WIDTH)
        for fmt, locator in sorted(run.artifacts.items()):
            lines.append(f"{fmt}: {locator}")
        lines.append("")

    lines.append(
        f"Records: {run.metadata.record_count:,}  "
        f"Size: {run.metadata.byte_size:,} bytes  "
        f"Time: {run.metadata.processing_time_ms:,} ms"
    )
    lines.append("=" * WIDTH)

    return "\n".join(lines)


def format_reconciliation_console(record: ReconciliationRecord) -> str:
    """
    Format a reconciliation record for console output

    Args:
        record: Reconciliation record to display

    Returns:
        Formatted string for console display
    """
    lines = []

    lines.append("=" * WIDTH)
    lines.append(f"RECONCILIATION {record.period}")
    lines.append("=" * WIDTH)
    lines.append(f"Record ID: {record.id}")
    if record.property_id:
        lines.append(f"Property: {record.property_id}")
    lines.append(f"Status: {record.status.value}")
    lines.append(f"Ledger Total: {record.ledger_total:,.2f}")
    lines.append(f"Statement Total: {record.statement_total:,.2f}")
    lines.append(f"Difference: {record.difference:,.2f}")
    lines.append(
        f"Transactions: {len(record.reconciled_transaction_ids)} reconciled, "
        f"{len(record.unreconciled_transaction_ids)} unreconciled"
    )
    if record.completed_at:
        lines.append(f"Completed: {record.completed_at.isoformat()}")
    lines.append("")

    if record.discrepancies:
        lines.append("DISCREPANCIES")
        lines.append("-" * WIDTH)
        for disc in record.discrepancies:
            lines.append(f"Transaction: {disc.transaction_id}")
            lines.append(
                f"  Ledger: {disc.ledger_amount:,.2f}  "
                f"Statement: {disc.statement_amount:,.2f}  "
                f"Difference: {disc.difference:,.2f}"
            )
            if disc.reason:
                lines.append(f"  Reason: {disc.reason}")
        lines.append("")

    if record.notes:
        lines.append("NOTES")
        lines.append("-" * WIDTH)
        lines.append(record.notes)
        lines.append("")

    lines.append("=" * WIDTH)

    return "\n".join(lines)


def format_jobs_table(jobs: Iterable[ScheduledReportJob]) -> str:
    """One line per scheduled job."""
    lines = [f"{'ID':<18} {'TYPE':<14} {'FREQUENCY':<10} {'ACTIVE':<7} NEXT RUN"]
    for job in jobs:
        lines.append(
            f"{job.id:<18} {job.report_type.value:<14} "
            f"{job.schedule.frequency.value:<10} {'yes' if job.is_active else 'no':<7} "
            f"{job.next_run.isoformat()}"
        )
    return "\n".join(lines)
