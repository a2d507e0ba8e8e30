#!/usr/bin/env python3
"""
Run the monthly payroll scheduler as a foreground daemon.

Loads settings (YAML file + environment), connects to the database with
retries, optionally creates the tables, and starts the payroll scheduler.
SIGINT / SIGTERM cancel the scheduler; an attempt already inside its
transaction finishes before the process exits.

Usage:
    python3 scripts/run_payroll_scheduler.py [--config settings.yaml] [--create-tables]

Environment:
    DATABASE_URL              PostgreSQL connection URL (required)
    BUDGET_CONFIG_FILE        Optional YAML settings file
    PAYROLL_SCHEDULER_ENABLED Set to "false" to exit without scheduling
"""

from __future__ import annotations

import argparse
import signal
import sys
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the monthly payroll scheduler until interrupted.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML settings file (default: $BUDGET_CONFIG_FILE).",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before starting.",
    )
    parser.add_argument(
        "--echo",
        action="store_true",
        help="Log all SQL statements.",
    )
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    from budget_kernel.config import load_settings
    from budget_kernel.db.engine import connect_with_retry, create_tables, get_session_factory
    from budget_kernel.domain.cancellation import CancellationToken
    from budget_kernel.exceptions import DatabaseConnectError
    from budget_kernel.logging_config import configure_logging, get_logger

    from budget_payroll.services.payroll_service import PayrollService
    from budget_payroll.services.retry import RetryPolicy
    from budget_payroll.services.scheduler import start_scheduler

    settings = load_settings(args.config)
    configure_logging(level=settings.log_level)
    logger = get_logger("scripts.payroll_scheduler")

    if not settings.database.url:
        logger.error("database_url_missing")
        print("DATABASE_URL is required", file=sys.stderr)
        return 2

    if not settings.payroll.scheduler_enabled:
        logger.info("payroll_scheduler_disabled")
        return 0

    try:
        engine = connect_with_retry(
            settings.database.url,
            retries=settings.database.connect_retries,
            interval=settings.database.connect_interval_seconds,
            echo=args.echo,
        )
    except DatabaseConnectError:
        logger.exception("database_unavailable")
        return 1

    if args.create_tables:
        create_tables(engine)

    token = CancellationToken()

    def _handle_signal(signum, _frame):
        logger.info("shutdown_signal_received", extra={"signal": signal.Signals(signum).name})
        token.cancel()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    payroll = settings.payroll
    service = PayrollService(get_session_factory(), token=token)
    scheduler = start_scheduler(
        service,
        token,
        retry_policy=RetryPolicy(
            backoffs=payroll.backoff_seconds,
            ping_timeout=payroll.ping_timeout_seconds,
            run_timeout=payroll.run_timeout_seconds,
        ),
        warmup_seconds=payroll.warmup_seconds,
        failure_retry_seconds=payroll.failure_retry_seconds,
    )

    # Main thread idles on the token so signal handlers run promptly
    while not token.wait(1.0):
        pass

    scheduler.stop(timeout=payroll.run_timeout_seconds + 5)
    engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
