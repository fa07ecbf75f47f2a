"""
Command-line interface for the report engine.

Available commands:
- generate: Generate a report now
- jobs: Manage scheduled reports (add, list, remove, pause, resume, preview)
- schedule: Run the scheduled report loop
- reconcile: Reconcile ledger periods against statements
- runs: Inspect generated reports
- stats: Report activity statistics
"""

import logging
import sys

from utils.logging import setup_logging, shutdown_logging
from utils.tracing import initialize_tracing, shutdown_tracing

from ..config import EngineConfig
from ..errors import ReportEngineError
from .commands import (
    EngineContext,
    build_context,
    cmd_generate,
    cmd_jobs_add,
    cmd_jobs_list,
    cmd_jobs_pause,
    cmd_jobs_preview,
    cmd_jobs_remove,
    cmd_jobs_resume,
    cmd_reconcile_apply,
    cmd_reconcile_dispute,
    cmd_reconcile_list,
    cmd_reconcile_reopen,
    cmd_reconcile_resolve,
    cmd_reconcile_show,
    cmd_reconcile_start,
    cmd_runs_list,
    cmd_runs_show,
    cmd_schedule,
    cmd_stats,
)
from .parser import create_parser

logger = logging.getLogger(__name__)

COMMANDS = {
    ("generate", None): cmd_generate,
    ("jobs", "add"): cmd_jobs_add,
    ("jobs", "list"): cmd_jobs_list,
    ("jobs", "remove"): cmd_jobs_remove,
    ("jobs", "pause"): cmd_jobs_pause,
    ("jobs", "resume"): cmd_jobs_resume,
    ("jobs", "preview"): cmd_jobs_preview,
    ("schedule", None): cmd_schedule,
    ("reconcile", "start"): cmd_reconcile_start,
    ("reconcile", "apply"): cmd_reconcile_apply,
    ("reconcile", "resolve"): cmd_reconcile_resolve,
    ("reconcile", "dispute"): cmd_reconcile_dispute,
    ("reconcile", "reopen"): cmd_reconcile_reopen,
    ("reconcile", "list"): cmd_reconcile_list,
    ("reconcile", "show"): cmd_reconcile_show,
    ("runs", "list"): cmd_runs_list,
    ("runs", "show"): cmd_runs_show,
    ("stats", None): cmd_stats,
}


def run(argv: list[str] | None = None, config: EngineConfig | None = None) -> int:
    """
    Parse arguments and execute a command

    Args:
        argv: Arguments (default: sys.argv[1:])
        config: Engine configuration (default: read from the environment)

    Returns:
        Process exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    sub_command = getattr(args, f"{args.command}_command", None) if args.command else None
    handler = COMMANDS.get((args.command, sub_command))
    if handler is None:
        parser.print_help()
        return 1

    setup_logging(level=args.log_level, log_file=args.log_file, json_format=args.log_json)

    try:
        ctx = build_context(args, config)
        initialize_tracing(otlp_endpoint=ctx.config.otlp_endpoint)
        return handler(args, ctx)
    except ReportEngineError as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    finally:
        shutdown_tracing()


def main() -> None:
    """Main entry point for the report-engine CLI"""
    exit_code = run()
    shutdown_logging()
    sys.exit(exit_code)


__all__ = [
    'COMMANDS',
    'EngineContext',
    'build_context',
    'create_parser',
    'main',
    'run',
]


if __name__ == '__main__':
    main()
