"""
Command-line argument parser configuration.

This module sets up the argument parser for the report-engine CLI tool,
defining all commands and their options.
"""

import argparse

from ..models import DateRangeSelector, Frequency, ReconciliationStatus, ReportType, RunStatus

REPORT_TYPES = [t.value for t in ReportType]
SELECTORS = [s.value for s in DateRangeSelector]


def _add_filter_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--property-ids',
        help='Comma-separated property ids to include (default: all)'
    )
    parser.add_argument(
        '--categories',
        help='Comma-separated transaction categories to include (default: all)'
    )
    parser.add_argument('--min-amount', type=float, help='Ignore transactions below this amount')
    parser.add_argument('--max-amount', type=float, help='Ignore transactions above this amount')


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='report-engine',
        description="Scheduled property reports and ledger reconciliation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Generate last month's financial report as JSON and CSV
  report-engine --data snapshot.json generate --type financial --formats json,csv

  # Schedule a monthly portfolio report on the 1st at 09:00 London time
  report-engine jobs add --name "Owner pack" --type portfolio --frequency monthly \\
      --day-of-month 1 --time 09:00 --timezone Europe/London --recipients owner@example.com

  # Preview the next run times of a job
  report-engine jobs preview job-1a2b3c4d5e6f --count 6

  # Run the scheduler loop, polling every minute
  report-engine --data snapshot.json schedule --interval 60

  # Reconcile March 2024 against a bank statement
  report-engine --data snapshot.json reconcile start --period 2024-03
  report-engine --data snapshot.json reconcile apply rec-1a2b3c4d5e6f --statement-csv march.csv
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument('--log-json', action='store_true', help='Emit JSON log lines')
    parser.add_argument('--log-file', help='Also write logs to this rotating file')
    parser.add_argument('--state-dir', help='Record store directory (default: $REPORT_STATE_DIR)')
    parser.add_argument('--output-dir', help='Artifact directory (default: $REPORT_OUTPUT_DIR)')
    parser.add_argument('--data', help='JSON data snapshot with the ledger and property records')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Generate command ==========
    generate_parser = subparsers.add_parser('generate', help='Generate a report now')
    generate_parser.add_argument('--type', required=True, choices=REPORT_TYPES, help='Report type')
    generate_parser.add_argument('--name', help='Report name (default: derived from type and range)')
    generate_parser.add_argument(
        '--range',
        choices=SELECTORS,
        default=DateRangeSelector.LAST_MONTH.value,
        help='Relative reporting window (default: last_month)'
    )
    generate_parser.add_argument('--start', help='Explicit range start (ISO date or instant)')
    generate_parser.add_argument('--end', help='Explicit range end (ISO date or instant)')
    generate_parser.add_argument(
        '--formats',
        default='json',
        help='Comma-separated output formats: json, csv, pdf, both (default: json)'
    )
    generate_parser.add_argument('--recipients', help='Comma-separated recipient emails')
    generate_parser.add_argument('--generated-by', default='cli', help='Requesting user')
    _add_filter_options(generate_parser)

    # ========== Jobs command ==========
    jobs_parser = subparsers.add_parser('jobs', help='Manage scheduled reports')
    jobs_sub = jobs_parser.add_subparsers(dest='jobs_command', help='Job commands')

    add_parser = jobs_sub.add_parser('add', help='Create a scheduled report')
    add_parser.add_argument('--name', required=True, help='Report name')
    add_parser.add_argument('--type', required=True, choices=REPORT_TYPES, help='Report type')
    add_parser.add_argument(
        '--frequency',
        required=True,
        choices=[f.value for f in Frequency],
        help='Recurrence'
    )
    add_parser.add_argument('--time', default='09:00', help='Time of day HH:MM (default: 09:00)')
    add_parser.add_argument('--timezone', default='UTC', help='IANA timezone (default: UTC)')
    add_parser.add_argument(
        '--day-of-week',
        type=int,
        help='Weekly schedules: 0 = Sunday ... 6 = Saturday'
    )
    add_parser.add_argument(
        '--day-of-month',
        type=int,
        help='Monthly and quarterly schedules: 1-31, clamped to short months'
    )
    add_parser.add_argument(
        '--range',
        choices=SELECTORS,
        default=DateRangeSelector.LAST_MONTH.value,
        help='Reporting window of each run (default: last_month)'
    )
    add_parser.add_argument(
        '--formats',
        default='json',
        help='Comma-separated output formats (default: json)'
    )
    add_parser.add_argument('--recipients', help='Comma-separated recipient emails')
    add_parser.add_argument('--description', default='', help='Free-text description')
    add_parser.add_argument('--created-by', default='cli', help='Owner of the job')
    add_parser.add_argument('--inactive', action='store_true', help='Create the job paused')
    add_parser.add_argument('--no-charts', action='store_true', help='Omit charts from artifacts')
    add_parser.add_argument('--raw-data', action='store_true', help='Include raw data in artifacts')
    _add_filter_options(add_parser)

    list_parser = jobs_sub.add_parser('list', help='List scheduled reports')
    list_parser.add_argument('--active', action='store_true', help='Only active jobs')

    remove_parser = jobs_sub.add_parser('remove', help='Delete a scheduled report')
    remove_parser.add_argument('job_id', help='Job id')

    pause_parser = jobs_sub.add_parser('pause', help='Deactivate a scheduled report')
    pause_parser.add_argument('job_id', help='Job id')

    resume_parser = jobs_sub.add_parser('resume', help='Reactivate a scheduled report')
    resume_parser.add_argument('job_id', help='Job id')

    preview_parser = jobs_sub.add_parser('preview', help='Show upcoming run times of a job')
    preview_parser.add_argument('job_id', help='Job id')
    preview_parser.add_argument('--count', type=int, default=5, help='Runs to show (default: 5)')

    # ========== Schedule command ==========
    schedule_parser = subparsers.add_parser('schedule', help='Run the scheduled report loop')
    schedule_parser.add_argument(
        '--interval',
        type=int,
        help='Poll interval in seconds (default: $REPORT_POLL_INTERVAL or 60)'
    )
    schedule_parser.add_argument(
        '--once',
        action='store_true',
        help='Process due jobs once and exit'
    )
    schedule_parser.add_argument(
        '--no-metrics',
        action='store_true',
        help='Do not start the Prometheus metrics server'
    )

    # ========== Reconcile command ==========
    reconcile_parser = subparsers.add_parser('reconcile', help='Reconcile ledger periods')
    reconcile_sub = reconcile_parser.add_subparsers(
        dest='reconcile_command', help='Reconciliation commands'
    )

    start_parser = reconcile_sub.add_parser('start', help='Open a reconciliation period')
    start_parser.add_argument('--period', required=True, help='Calendar month YYYY-MM')
    start_parser.add_argument('--property-id', help='Restrict to one property')

    apply_parser = reconcile_sub.add_parser('apply', help='Apply a statement to a period')
    apply_parser.add_argument('record_id', help='Reconciliation id')
    apply_parser.add_argument('--statement-total', type=float, help='Statement total')
    apply_parser.add_argument(
        '--statement-csv',
        help='Statement lines (reference,date,amount,description); '
             'the total defaults to their sum'
    )
    apply_parser.add_argument('--by', help='User applying the statement')

    resolve_parser = reconcile_sub.add_parser('resolve', help='Accept a discrepancy')
    resolve_parser.add_argument('record_id', help='Reconciliation id')
    resolve_parser.add_argument('--note', required=True, help='Resolution note')
    resolve_parser.add_argument('--by', help='User resolving the discrepancy')

    dispute_parser = reconcile_sub.add_parser('dispute', help='Dispute a discrepancy')
    dispute_parser.add_argument('record_id', help='Reconciliation id')
    dispute_parser.add_argument('--reason', required=True, help='Dispute reason')

    reopen_parser = reconcile_sub.add_parser('reopen', help='Reopen a disputed period')
    reopen_parser.add_argument('record_id', help='Reconciliation id')
    reopen_parser.add_argument('--note', required=True, help='Reopen note')

    rlist_parser = reconcile_sub.add_parser('list', help='List reconciliation periods')
    rlist_parser.add_argument('--period', help='Only this month (YYYY-MM)')
    rlist_parser.add_argument(
        '--status',
        choices=[s.value for s in ReconciliationStatus],
        help='Only this status'
    )

    rshow_parser = reconcile_sub.add_parser('show', help='Show a reconciliation period')
    rshow_parser.add_argument('record_id', help='Reconciliation id')

    # ========== Runs command ==========
    runs_parser = subparsers.add_parser('runs', help='Inspect generated reports')
    runs_sub = runs_parser.add_subparsers(dest='runs_command', help='Run commands')

    runs_list_parser = runs_sub.add_parser('list', help='List generated reports')
    runs_list_parser.add_argument('--job', help='Only runs of this scheduled job')
    runs_list_parser.add_argument(
        '--status',
        choices=[s.value for s in RunStatus],
        help='Only this status'
    )
    runs_list_parser.add_argument('--limit', type=int, default=20, help='Newest N runs (default: 20)')

    show_parser = runs_sub.add_parser('show', help='Show a generated report')
    show_parser.add_argument('run_id', help='Run id')
    show_parser.add_argument('--json', action='store_true', help='Print the stored record as JSON')

    # ========== Stats command ==========
    subparsers.add_parser('stats', help='Show report activity statistics')

    return parser
