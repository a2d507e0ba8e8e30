"""
RetryRunner -- bounded, backing-off retry of one monthly payroll run.

Contract:
    ``run()`` makes up to ``len(policy.backoffs)`` attempts.  Attempt ``i``
    first waits ``backoffs[i]`` seconds (cancellable), pings the store, then
    calls ``PayrollService.run_monthly_payroll``.  The outcome is always a
    ``PayrollRunResult``; failures are logged, never raised.

    Attempt(i) --ok--------------> SUCCEEDED
               --ping failed-----> Attempt(i+1)        (FAILED if last)
               --transient error-> Attempt(i+1)        (FAILED if last)
               --permanent error-> FAILED
               --token cancelled-> CANCELLED

Architecture: budget_payroll/services.  Classification is pure and
    exported for reuse (``classify_failure``, ``is_bad_connection``).

Invariants enforced:
    - A failed run transaction has rolled back before the next attempt, so
      retrying never duplicates a credit.
    - Cancellation wins over any pending backoff.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from sqlalchemy.exc import DBAPIError, DisconnectionError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from budget_kernel.domain.cancellation import CancellationToken
from budget_kernel.exceptions import ConnectionUnusableError, PayrollRunCancelledError
from budget_kernel.logging_config import get_logger

from budget_payroll.domain.types import FailureKind, PayrollRunResult, RunStatus
from budget_payroll.services.payroll_service import PayrollService

logger = get_logger("payroll.retry")

_BAD_CONNECTION_TEXT = "bad connection"


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff schedule and per-attempt timeouts, in seconds."""

    backoffs: tuple[float, ...] = (0.0, 0.75, 2.0)
    ping_timeout: float = 3.0
    run_timeout: float = 10.0

    def __post_init__(self) -> None:
        if not self.backoffs:
            raise ValueError("RetryPolicy requires at least one attempt")
        if any(b < 0 for b in self.backoffs):
            raise ValueError(f"Backoffs must be non-negative: {self.backoffs}")

    @property
    def max_attempts(self) -> int:
        return len(self.backoffs)


# =============================================================================
# Classification
# =============================================================================


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` and everything reachable via __cause__/__context__."""
    seen: set[int] = set()
    pending = [exc]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            pending.append(current.__cause__)
        if current.__context__ is not None:
            pending.append(current.__context__)


def _is_unusable_connection(exc: BaseException) -> bool:
    if isinstance(exc, (ConnectionUnusableError, DisconnectionError, PoolTimeoutError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return _BAD_CONNECTION_TEXT in str(exc).lower()


def is_bad_connection(exc: BaseException | None) -> bool:
    """True when ``exc`` or anything it wraps means the connection is unusable."""
    if exc is None:
        return False
    return any(_is_unusable_connection(e) for e in _exception_chain(exc))


def classify_failure(exc: BaseException) -> FailureKind:
    if any(isinstance(e, PayrollRunCancelledError) for e in _exception_chain(exc)):
        return FailureKind.CANCELLED
    if is_bad_connection(exc):
        return FailureKind.TRANSIENT
    return FailureKind.PERMANENT


# =============================================================================
# Runner
# =============================================================================


class RetryRunner:
    """Runs the monthly payroll with transient-failure retries.

    Non-goals:
        - Does NOT schedule -- PayrollScheduler decides when to call ``run()``.
        - Does NOT retry permanent failures.
    """

    def __init__(
        self,
        service: PayrollService,
        token: CancellationToken | None = None,
        policy: RetryPolicy | None = None,
    ):
        self._service = service
        self._token = token or service.token
        self._policy = policy or RetryPolicy()

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def run(self) -> PayrollRunResult:
        max_attempts = self._policy.max_attempts
        last_error: BaseException | None = None
        last_kind: FailureKind | None = None

        for index, delay in enumerate(self._policy.backoffs):
            attempt = index + 1
            if self._token.cancelled or self._token.wait(delay):
                return self._cancelled(index)

            try:
                self._service.ping(self._policy.ping_timeout)
            except Exception as exc:
                kind = classify_failure(exc)
                if kind == FailureKind.CANCELLED:
                    return self._cancelled(index)
                last_error, last_kind = exc, FailureKind.TRANSIENT
                logger.warning(
                    "payroll_ping_failed",
                    extra={
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "error": str(exc),
                    },
                )
                continue

            try:
                created = self._service.run_monthly_payroll(
                    timeout=self._policy.run_timeout,
                )
            except Exception as exc:
                kind = classify_failure(exc)
                if kind == FailureKind.CANCELLED:
                    return self._cancelled(attempt)
                last_error, last_kind = exc, kind
                logger.warning(
                    "payroll_attempt_failed",
                    extra={
                        "attempt": attempt,
                        "max_attempts": max_attempts,
                        "failure_kind": kind.value,
                        "error": str(exc),
                    },
                )
                if kind == FailureKind.PERMANENT:
                    return self._failed(attempt, last_kind, last_error)
                continue

            logger.info(
                "payroll_attempt_succeeded",
                extra={"attempt": attempt, "created_count": created},
            )
            return PayrollRunResult(
                status=RunStatus.SUCCEEDED,
                created_count=created,
                attempts=attempt,
            )

        return self._failed(max_attempts, last_kind, last_error)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _cancelled(self, attempts: int) -> PayrollRunResult:
        logger.info("payroll_run_cancelled", extra={"attempts": attempts})
        return PayrollRunResult(
            status=RunStatus.CANCELLED,
            attempts=attempts,
            failure_kind=FailureKind.CANCELLED,
        )

    def _failed(
        self,
        attempts: int,
        kind: FailureKind | None,
        error: BaseException | None,
    ) -> PayrollRunResult:
        logger.error(
            "payroll_run_failed",
            extra={
                "attempts": attempts,
                "failure_kind": kind.value if kind else None,
                "error": str(error) if error else None,
            },
        )
        return PayrollRunResult(
            status=RunStatus.FAILED,
            attempts=attempts,
            failure_kind=kind,
            error=str(error) if error else None,
        )
