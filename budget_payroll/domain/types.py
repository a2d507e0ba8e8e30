"""
budget_payroll.domain.types -- Enums and the run result record.

ZERO I/O.  Frozen dataclasses with enum status fields, following the batch
DTO pattern.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RunStatus(str, Enum):
    """Outcome of one retried payroll run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"  # Permanent failure, or transient retries exhausted
    CANCELLED = "cancelled"  # Token cancelled before or between attempts


class FailureKind(str, Enum):
    """Classification of an attempt failure."""

    TRANSIENT = "transient"  # Connection no longer usable; worth retrying
    PERMANENT = "permanent"
    CANCELLED = "cancelled"


class SchedulerState(str, Enum):
    """Scheduler loop state machine."""

    IDLE = "idle"  # Constructed, not started
    WAITING = "waiting"  # Sleeping until next_run_at
    RUNNING = "running"  # Payroll attempt in progress
    CANCELLED = "cancelled"  # Terminal


@dataclass(frozen=True)
class PayrollRunResult:
    """Immutable result of ``RetryRunner.run()``.

    ``created_count`` is the number of budgets credited by the successful
    attempt (0 otherwise).  ``error`` holds the last failure's message.
    """

    status: RunStatus
    created_count: int = 0
    attempts: int = 0
    failure_kind: FailureKind | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCEEDED
