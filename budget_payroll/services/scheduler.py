"""
PayrollScheduler -- in-process monthly payroll loop.

Contract:
    After a warm-up pause, runs the monthly payroll immediately, then at
    00:00 on the first day of each following month (local wall clock,
    computed after each run completes).  A failed run is retried after a
    short delay; the month is never skipped.

        IDLE -> WAITING(warm-up) -> RUNNING -> WAITING(next month start)
                                            -> WAITING(now + retry delay)
             ... -> CANCELLED

Architecture: budget_payroll/services.  Uses budget_payroll.domain.schedule
    for pure date arithmetic and RetryRunner for each attempt.

Invariants enforced:
    - All timestamps from injected Clock.
    - Every wait goes through the CancellationToken; cancellation ends the
      loop while waiting or before an attempt, never mid-transaction.
    - Scheduler state lives on the instance; no module-level mutable state.
    - Long waits are sliced and re-evaluated against the clock, so a
      wall-clock jump is noticed within one slice.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta

from budget_kernel.domain.cancellation import CancellationToken
from budget_kernel.domain.clock import Clock
from budget_kernel.logging_config import get_logger

from budget_payroll.domain.schedule import next_month_start
from budget_payroll.domain.types import PayrollRunResult, RunStatus, SchedulerState
from budget_payroll.services.payroll_service import PayrollService
from budget_payroll.services.retry import RetryPolicy, RetryRunner

logger = get_logger("payroll.scheduler")

_MAX_WAIT_SLICE = 3600.0


class PayrollScheduler:
    """Background thread that keeps the monthly payroll applied.

    Contract:
        - ``run_once()`` performs one retried run and computes the next
          instant (public for testing).
        - ``start()`` / ``stop()`` for background thread operation.
          ``start()`` may be called once.
        - Shares the service's CancellationToken; passing any other token
          raises ValueError.

    Non-goals:
        - NOT a distributed scheduler; concurrent processes are made safe by
          the row locks, not by leader election.
        - Does NOT replay months missed while the process was down.
    """

    def __init__(
        self,
        service: PayrollService,
        token: CancellationToken | None = None,
        clock: Clock | None = None,
        retry_policy: RetryPolicy | None = None,
        warmup_seconds: float = 2.0,
        failure_retry_seconds: float = 15.0,
    ):
        if token is not None and token is not service.token:
            raise ValueError(
                "PayrollScheduler token must be the service's token"
            )
        self._token = service.token
        self._clock = clock or service.clock
        self._runner = RetryRunner(service, self._token, retry_policy)
        self._warmup = warmup_seconds
        self._failure_retry = failure_retry_seconds

        self._lock = threading.Lock()
        self._state = SchedulerState.IDLE
        self._next_run_at: datetime | None = None
        self._last_result: PayrollRunResult | None = None
        self._started = False
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def next_run_at(self) -> datetime | None:
        return self._next_run_at

    @property
    def last_result(self) -> PayrollRunResult | None:
        return self._last_result

    @property
    def token(self) -> CancellationToken:
        return self._token

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> PayrollRunResult:
        """Run the payroll with retries and schedule the next attempt."""
        self._state = SchedulerState.RUNNING
        result = self._runner.run()

        if result.status == RunStatus.CANCELLED:
            self._state = SchedulerState.CANCELLED
            self._last_result = result
            return result

        now = self._clock.now_local()
        if result.status == RunStatus.SUCCEEDED:
            self._next_run_at = next_month_start(now)
            logger.info(
                "payroll_month_completed",
                extra={
                    "created_count": result.created_count,
                    "month": now.strftime("%Y-%m"),
                },
            )
        else:
            self._next_run_at = now + timedelta(seconds=self._failure_retry)

        self._state = SchedulerState.WAITING
        logger.info(
            "scheduler_next_run",
            extra={
                "next_run_at": self._next_run_at,
                "last_status": result.status.value,
            },
        )
        self._last_result = result
        return result

    def start(self) -> None:
        """Start the scheduler in a background daemon thread.

        Raises:
            RuntimeError: If the scheduler was already started.
        """
        with self._lock:
            if self._started:
                raise RuntimeError("PayrollScheduler already started")
            self._started = True

        self._thread = threading.Thread(
            target=self._run_loop,
            name="payroll-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "scheduler_started",
            extra={
                "warmup_seconds": self._warmup,
                "failure_retry_seconds": self._failure_retry,
            },
        )

    def stop(self, timeout: float = 30.0) -> None:
        """Cancel the token and wait for the loop to exit.

        An attempt already inside its transaction finishes first.
        """
        self._token.cancel()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        if not self.is_running:
            self._state = SchedulerState.CANCELLED
        logger.info("scheduler_stopped", extra={"state": self._state.value})

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        """Background loop. Exits when the token is cancelled."""
        try:
            self._state = SchedulerState.WAITING
            if self._token.wait(self._warmup):
                return
            self._next_run_at = self._clock.now_local()

            while self._wait_until(self._next_run_at):
                try:
                    result = self.run_once()
                except Exception:
                    logger.exception("scheduler_run_exception")
                    self._state = SchedulerState.WAITING
                    self._next_run_at = self._clock.now_local() + timedelta(
                        seconds=self._failure_retry
                    )
                    continue
                if result.status == RunStatus.CANCELLED:
                    break
        finally:
            self._state = SchedulerState.CANCELLED
            logger.info("scheduler_loop_exited")

    def _wait_until(self, target: datetime) -> bool:
        """Sleep until ``target``; False if cancelled first."""
        while True:
            if self._token.cancelled:
                return False
            remaining = target.timestamp() - self._clock.now_local().timestamp()
            if remaining <= 0:
                return True
            if self._token.wait(min(remaining, _MAX_WAIT_SLICE)):
                return False


def start_scheduler(
    service: PayrollService,
    token: CancellationToken | None = None,
    *,
    clock: Clock | None = None,
    retry_policy: RetryPolicy | None = None,
    warmup_seconds: float = 2.0,
    failure_retry_seconds: float = 15.0,
) -> PayrollScheduler:
    """Create and start a PayrollScheduler; cancel ``token`` to stop it.

    ``token`` must be ``service.token`` (or omitted) so the service refuses
    new transactions once the loop is cancelled.
    """
    scheduler = PayrollScheduler(
        service,
        token=token,
        clock=clock,
        retry_policy=retry_policy,
        warmup_seconds=warmup_seconds,
        failure_retry_seconds=failure_retry_seconds,
    )
    scheduler.start()
    return scheduler
