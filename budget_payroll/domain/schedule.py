"""
Pure calendar arithmetic for the monthly payroll.

Contract:
    Every function is PURE -- no I/O, no clock access.  Callers pass the
    instant to reason about; month boundaries are taken in that instant's
    own time zone.

Architecture: budget_payroll/domain.  ZERO I/O.
"""

from __future__ import annotations

from datetime import datetime

from dateutil.relativedelta import relativedelta

# Fixed English names so descriptions do not depend on the process locale.
_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


def month_start(now: datetime) -> datetime:
    """00:00:00 on the first day of ``now``'s month, same tzinfo."""
    return datetime(now.year, now.month, 1, tzinfo=now.tzinfo)


def next_month_start(now: datetime) -> datetime:
    """00:00:00 on the first day of the month after ``now``, same tzinfo.

    Wall-clock arithmetic: with a DST-aware zone the result is local
    midnight even when the offset changes during the month.

    >>> next_month_start(datetime(2024, 12, 31, 23, 59))
    datetime.datetime(2025, 1, 1, 0, 0)
    """
    return month_start(now) + relativedelta(months=1)


def payroll_description(now: datetime) -> str:
    """Ledger description for the payroll credit, e.g. ``"Payroll March 2024"``."""
    return f"Payroll {_MONTH_NAMES[now.month - 1]} {now.year}"


def auto_balance_description(budget_name: str) -> str:
    return f"Auto-balance for {budget_name}"


def has_run_this_month(run_at: datetime | None, month_begin: datetime) -> bool:
    """True when a run marker falls on or after the start of the month."""
    return run_at is not None and run_at >= month_begin
