"""
budget_payroll.domain -- Pure types and schedule arithmetic.

ZERO I/O.
"""

from budget_payroll.domain.schedule import (
    auto_balance_description,
    has_run_this_month,
    month_start,
    next_month_start,
    payroll_description,
)
from budget_payroll.domain.types import (
    FailureKind,
    PayrollRunResult,
    RunStatus,
    SchedulerState,
)

__all__ = [
    "auto_balance_description",
    "FailureKind",
    "PayrollRunResult",
    "RunStatus",
    "SchedulerState",
    "has_run_this_month",
    "month_start",
    "next_month_start",
    "payroll_description",
]
