"""
PayrollService -- transaction-owning entry points of the payroll engine.

Contract:
    - ``run_monthly_payroll()`` credits every eligible budget in ONE
      transaction and returns the number credited.
    - ``run_budget_payroll()`` applies payroll to a single budget on behalf
      of an actor, optionally forcing a re-run in the same month.
    - ``ping()`` is a bounded connectivity check in its own transaction.

Architecture: budget_payroll/services.  The only payroll component that
    opens sessions; PayrollExecutor and LedgerStore are flush-only.

Invariants enforced:
    - Eligible budgets are locked before any balance read or write, so a
      concurrent forced run on the same budget serializes on the row lock
      and then sees the committed run marker.
    - All-or-nothing: any error rolls back every entry and marker of the run.
    - The cancellation token is checked before a transaction opens, never
      while one is in flight.
    - All timestamps come from the injected Clock unless the caller passes
      ``now`` explicitly.

Failure modes:
    - PayrollRunCancelledError when the token is already cancelled.
    - BudgetNotFoundError (unknown budget or no access) from
      ``run_budget_payroll``.
    - SQLAlchemy errors propagate; RetryRunner classifies them.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy.orm import Session, sessionmaker

from budget_kernel.db.engine import session_scope
from budget_kernel.domain.cancellation import CancellationToken
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.logging_config import LogContext, get_logger
from budget_kernel.services.ledger_store import LedgerStore

from budget_payroll.domain.schedule import month_start
from budget_payroll.services.executor import PayrollExecutor

logger = get_logger("payroll.service")


class PayrollService:
    """Monthly and single-budget payroll runs.

    Non-goals:
        - Does NOT retry -- wrap in RetryRunner for that.
        - Does NOT backfill months missed while the process was down; the
          next run credits the current month once.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        token: CancellationToken | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._token = token or CancellationToken()

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def token(self) -> CancellationToken:
        return self._token

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def ping(self, timeout: float | None = None) -> None:
        self._token.raise_if_cancelled("ping")
        with session_scope(self._session_factory) as session:
            store = LedgerStore(session)
            store.apply_statement_timeout(timeout)
            store.ping()

    def run_monthly_payroll(
        self,
        now: datetime | None = None,
        timeout: float | None = None,
    ) -> int:
        """Credit payroll to every budget not yet paid this month.

        Args:
            now: Instant of the run; month boundaries use its time zone.
                Defaults to ``clock.now_local()``.
            timeout: Statement timeout in seconds for the transaction.

        Returns:
            Number of budgets credited.
        """
        self._token.raise_if_cancelled("monthly run")
        now = now or self._clock.now_local()
        month_begin = month_start(now)

        with LogContext.bind(run_id=uuid4()):
            logger.info(
                "payroll_run_started",
                extra={"now": now, "month_start": month_begin},
            )
            created = 0
            with session_scope(self._session_factory) as session:
                store = LedgerStore(session)
                store.apply_statement_timeout(timeout)
                executor = PayrollExecutor(store)
                budgets = store.select_eligible_budgets_for_update(month_begin)
                for budget in budgets:
                    with LogContext.bind(budget_id=budget.budget_id):
                        created += executor.apply(budget, now, month_begin)

            logger.info(
                "payroll_run_completed",
                extra={"eligible": len(budgets), "created_count": created},
            )
        return created

    def run_budget_payroll(
        self,
        budget_id: UUID,
        actor_id: UUID | None,
        now: datetime | None = None,
        force: bool = False,
        timeout: float | None = None,
    ) -> int:
        """Apply payroll to one budget.

        ``actor_id=None`` runs as the system.  With ``force`` the monthly
        idempotency guard is bypassed; ``payroll <= 0`` is still a no-op.

        Returns:
            1 if a payroll credit was written, else 0.

        Raises:
            BudgetNotFoundError: Unknown budget or actor without access.
        """
        self._token.raise_if_cancelled("budget run")
        now = now or self._clock.now_local()
        month_begin = month_start(now)

        with LogContext.bind(run_id=uuid4(), budget_id=budget_id, actor_id=actor_id):
            with session_scope(self._session_factory) as session:
                store = LedgerStore(session)
                store.apply_statement_timeout(timeout)
                store.ensure_budget_access(budget_id, actor_id)
                budget = store.lock_budget_for_update(budget_id)
                created = PayrollExecutor(store).apply(budget, now, month_begin, force=force)

            logger.info(
                "budget_payroll_completed",
                extra={"created_count": created, "forced": force},
            )
        return created
