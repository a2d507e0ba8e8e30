"""
LedgerStore -- payroll-relevant persistence surface.

Responsibility:
    Row-locked budget selection, balance computation, ledger-entry
    insertion, run-marker stamping, auto-balance source lookup, the
    budget-access check, and a connectivity ping.

Architecture position:
    Kernel > Services -- imperative shell.  Called by the payroll engine
    inside one transaction per run.

Invariants enforced:
    - Flush-only: the store never commits or rolls back.  The caller owns
      the transaction so "select eligible, allocate, credit, stamp" is
      all-or-nothing.
    - Budgets are locked (SELECT ... FOR UPDATE) before any balance read or
      entry write, and re-read after the lock is granted
      (populate_existing), so a run blocked behind another sees the
      committed run marker.
    - amount > 0 is validated before any INSERT.
    - payroll_run_at never moves backwards.

Failure modes:
    - NonPositiveAmountError on a zero or negative ledger amount.
    - BudgetNotFoundError for an unknown budget or an actor without access.
    - SQLAlchemy errors propagate unchanged; the retry runner classifies them.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Select, case, func, select, text
from sqlalchemy.orm import Session

from budget_kernel.domain.dtos import PayrollBudget, WeightedSource
from budget_kernel.exceptions import BudgetNotFoundError, NonPositiveAmountError
from budget_kernel.logging_config import get_logger
from budget_kernel.models.budget import AutoBalanceSource, Budget, BudgetMember
from budget_kernel.models.ledger_entry import LedgerEntry

logger = get_logger("services.ledger_store")


def eligible_budgets_statement(month_start: datetime) -> Select:
    """SELECT ... FOR UPDATE for budgets still owed this month's payroll."""
    return (
        select(Budget)
        .where(
            Budget.payroll > 0,
            (Budget.payroll_run_at.is_(None)) | (Budget.payroll_run_at < month_start),
        )
        .order_by(Budget.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


class LedgerStore:
    """
    Transactional ledger operations used by the payroll engine.

    Contract:
        Receives a SQLAlchemy ``Session`` with an active transaction and
        uses ``flush()`` only.

    Non-goals:
        - Does NOT create, rename, or delete budgets (CRUD layer).
        - Does NOT edit or delete ledger entries; the engine only appends.
    """

    def __init__(self, session: Session):
        self._session = session

    # -------------------------------------------------------------------------
    # Connectivity
    # -------------------------------------------------------------------------

    def ping(self) -> None:
        self._session.execute(text("SELECT 1"))

    def apply_statement_timeout(self, seconds: float | None) -> None:
        """Bound every statement in the current transaction (PostgreSQL only).

        Covers row-lock waits as well as query time.  No-op on other
        dialects and when ``seconds`` is None.
        """
        if seconds is None or seconds <= 0:
            return
        if self._session.get_bind().dialect.name != "postgresql":
            return
        millis = int(seconds * 1000)
        self._session.execute(text(f"SET LOCAL statement_timeout = {millis}"))

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def ensure_budget_access(self, budget_id: UUID, actor_id: UUID | None) -> None:
        """Verify ``actor_id`` may act on ``budget_id``.

        ``actor_id=None`` is the system actor and always passes; the budget's
        existence is then checked by the lock that follows.

        Raises:
            BudgetNotFoundError: No membership row for (budget, actor).
        """
        if actor_id is None:
            return
        member = self._session.execute(
            select(BudgetMember.id).where(
                BudgetMember.budget_id == budget_id,
                BudgetMember.user_id == actor_id,
            )
        ).first()
        if member is None:
            raise BudgetNotFoundError(budget_id, actor_id)

    # -------------------------------------------------------------------------
    # Locked reads
    # -------------------------------------------------------------------------

    def select_eligible_budgets_for_update(self, month_start: datetime) -> list[PayrollBudget]:
        """
        Lock and return every budget with payroll > 0 whose run marker is
        absent or earlier than ``month_start``.

        Postconditions:
            Each returned row stays exclusively locked until the caller's
            transaction ends.
        """
        budgets = self._session.execute(
            eligible_budgets_statement(month_start)
        ).scalars().all()
        logger.debug(
            "eligible_budgets_locked",
            extra={"count": len(budgets), "month_start": month_start},
        )
        return [b.to_dto() for b in budgets]

    def lock_budget_for_update(self, budget_id: UUID) -> PayrollBudget:
        """Lock one budget regardless of eligibility.

        Raises:
            BudgetNotFoundError: If the budget does not exist.
        """
        budget = self._session.execute(
            select(Budget)
            .where(Budget.id == budget_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if budget is None:
            raise BudgetNotFoundError(budget_id)
        return budget.to_dto()

    def current_balance(self, budget_id: UUID) -> Decimal:
        """Credits minus debits for ``budget_id``; 0 when it has no entries."""
        signed = case(
            (LedgerEntry.credit, LedgerEntry.amount),
            else_=-LedgerEntry.amount,
        )
        value = self._session.execute(
            select(func.coalesce(func.sum(signed), 0)).where(
                LedgerEntry.budget_id == budget_id
            )
        ).scalar_one()
        return Decimal(str(value))

    def auto_balance_sources(self, budget_id: UUID) -> list[WeightedSource]:
        """Sources for ``budget_id`` ordered by source_budget_id ascending."""
        rows = self._session.execute(
            select(AutoBalanceSource)
            .where(AutoBalanceSource.budget_id == budget_id)
            .order_by(AutoBalanceSource.source_budget_id)
        ).scalars().all()
        return [row.to_dto() for row in rows]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def insert_ledger_entry(
        self,
        budget_id: UUID,
        description: str,
        credit: bool,
        amount: Decimal,
        actor_id: UUID | None = None,
        now: datetime | None = None,
    ) -> LedgerEntry:
        """
        Append one ledger entry.

        Raises:
            NonPositiveAmountError: If ``amount <= 0``; nothing is written.
        """
        if amount <= 0:
            raise NonPositiveAmountError(amount, budget_id)

        entry = LedgerEntry(
            budget_id=budget_id,
            actor_id=actor_id,
            description=description,
            credit=credit,
            amount=amount,
        )
        if now is not None:
            entry.created_at = now
            entry.updated_at = now
        self._session.add(entry)
        self._session.flush()

        logger.debug(
            "ledger_entry_inserted",
            extra={
                "entry_id": str(entry.id),
                "budget_id": str(budget_id),
                "credit": credit,
                "amount": amount,
                "description": description,
            },
        )
        return entry

    def mark_payroll_run(self, budget_id: UUID, timestamp: datetime) -> datetime:
        """
        Stamp the run marker.

        The marker is monotonic: a ``timestamp`` older than the stored one
        leaves the stored value in place.

        Returns:
            The marker value after the update.
        """
        budget = self._session.get(Budget, budget_id)
        if budget is None:
            raise BudgetNotFoundError(budget_id)

        if budget.payroll_run_at is None or budget.payroll_run_at < timestamp:
            budget.payroll_run_at = timestamp
        budget.updated_at = timestamp
        self._session.flush()
        return budget.payroll_run_at
