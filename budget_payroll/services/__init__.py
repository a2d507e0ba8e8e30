"""Payroll engine services: executor, entry points, retry runner, scheduler."""

from budget_payroll.services.executor import PayrollExecutor
from budget_payroll.services.payroll_service import PayrollService
from budget_payroll.services.retry import (
    RetryPolicy,
    RetryRunner,
    classify_failure,
    is_bad_connection,
)
from budget_payroll.services.scheduler import PayrollScheduler, start_scheduler

__all__ = [
    "PayrollExecutor",
    "PayrollScheduler",
    "PayrollService",
    "RetryPolicy",
    "RetryRunner",
    "classify_failure",
    "is_bad_connection",
    "start_scheduler",
]
