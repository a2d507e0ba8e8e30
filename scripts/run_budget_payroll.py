#!/usr/bin/env python3
"""
Run payroll by hand, for one budget or for the whole month.

Usage:
    # Every eligible budget (same as the scheduler's monthly run)
    python3 scripts/run_budget_payroll.py --all

    # One budget as the system actor, bypassing the monthly guard
    python3 scripts/run_budget_payroll.py --budget <uuid> --force

    # One budget on behalf of a user (access is checked)
    python3 scripts/run_budget_payroll.py --budget <uuid> --actor <uuid>
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from uuid import UUID

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Apply payroll to one budget or to every eligible budget.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--budget", type=UUID, help="Budget id to credit.")
    target.add_argument("--all", action="store_true", help="Run the monthly payroll.")
    parser.add_argument("--actor", type=UUID, default=None, help="Acting user id (default: system).")
    parser.add_argument("--force", action="store_true", help="Re-run even if already paid this month.")
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file.")
    return parser.parse_args()


def main() -> int:
    args = _parse_args()

    from budget_kernel.config import load_settings
    from budget_kernel.db.engine import connect_with_retry, get_session_factory
    from budget_kernel.exceptions import BudgetKernelError
    from budget_kernel.logging_config import configure_logging, get_logger

    from budget_payroll.services.payroll_service import PayrollService

    settings = load_settings(args.config)
    configure_logging(level=settings.log_level)
    logger = get_logger("scripts.budget_payroll")

    if not settings.database.url:
        print("DATABASE_URL is required", file=sys.stderr)
        return 2

    try:
        engine = connect_with_retry(
            settings.database.url,
            retries=settings.database.connect_retries,
            interval=settings.database.connect_interval_seconds,
        )
        service = PayrollService(get_session_factory())
        timeout = settings.payroll.run_timeout_seconds
        if args.all:
            created = service.run_monthly_payroll(timeout=timeout)
        else:
            created = service.run_budget_payroll(
                args.budget, args.actor, force=args.force, timeout=timeout,
            )
    except BudgetKernelError as exc:
        logger.error("manual_payroll_failed", extra={"error_code": exc.code})
        print(f"{exc.code}: {exc}", file=sys.stderr)
        return 1

    engine.dispose()
    print(f"Created {created} payroll transaction(s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
