"""
PayrollExecutor -- apply the monthly payroll rule to one locked budget.

Contract:
    Runs inside the caller's transaction, against a budget the caller has
    already locked (SELECT ... FOR UPDATE).  Flush-only; the payroll service
    commits or rolls back.

Architecture: budget_payroll/services.  Uses budget_kernel.domain for the
    allocator and money conversions, LedgerStore for every read and write.

Invariants enforced:
    - payroll <= 0 is a no-op.
    - Without ``force``, a budget whose run marker falls in the current
      month is a no-op (monthly idempotency).
    - Auto-balance debits sum exactly to the target's credit.
    - Order within one budget: auto-balance debits, auto-balance credit,
      payroll credit, run marker.

Failure modes:
    - NonPositiveAmountError and storage errors propagate unchanged; the
      surrounding transaction discards everything written for the run.
"""

from __future__ import annotations

from datetime import datetime

from budget_kernel.domain.allocation import allocate
from budget_kernel.domain.dtos import AutoBalanceResult, AutoBalanceTransfer, PayrollBudget
from budget_kernel.domain.values import from_minor_units, to_minor_units
from budget_kernel.logging_config import get_logger
from budget_kernel.services.ledger_store import LedgerStore

from budget_payroll.domain.schedule import (
    auto_balance_description,
    has_run_this_month,
    payroll_description,
)

logger = get_logger("payroll.executor")


class PayrollExecutor:
    """Applies payroll (and the optional auto-balance) to a single budget.

    Non-goals:
        - Does NOT lock rows or open transactions.
        - Does NOT check actor access -- entry points do that first.
    """

    def __init__(self, store: LedgerStore):
        self._store = store

    def apply(
        self,
        budget: PayrollBudget,
        now: datetime,
        month_begin: datetime,
        force: bool = False,
    ) -> int:
        """Credit ``budget.payroll`` for the month of ``now``.

        Returns:
            1 if a payroll credit was written, else 0.
        """
        if budget.payroll <= 0:
            return 0

        if not force and has_run_this_month(budget.payroll_run_at, month_begin):
            logger.debug(
                "payroll_already_applied",
                extra={
                    "budget_id": str(budget.budget_id),
                    "payroll_run_at": budget.payroll_run_at,
                },
            )
            return 0

        if budget.auto_balance_enabled:
            self.auto_balance(budget, now)

        self._store.insert_ledger_entry(
            budget.budget_id,
            payroll_description(now),
            credit=True,
            amount=budget.payroll,
            actor_id=None,
            now=now,
        )
        self._store.mark_payroll_run(budget.budget_id, now)

        logger.info(
            "payroll_applied",
            extra={
                "budget_id": str(budget.budget_id),
                "amount": budget.payroll,
                "forced": force,
            },
        )
        return 1

    def auto_balance(self, budget: PayrollBudget, now: datetime) -> AutoBalanceResult:
        """Cover a negative balance from the budget's weighted sources.

        Sources are read in ascending source_budget_id order, which fixes how
        the allocator breaks ties.  Sources may go negative; no balance check
        is made on them.
        """
        balance = self._store.current_balance(budget.budget_id)
        if balance >= 0:
            return AutoBalanceResult(budget_id=budget.budget_id)

        deficit = to_minor_units(-balance)
        sources = self._store.auto_balance_sources(budget.budget_id)
        if deficit <= 0 or not sources:
            logger.debug(
                "auto_balance_skipped",
                extra={
                    "budget_id": str(budget.budget_id),
                    "deficit_minor": deficit,
                    "source_count": len(sources),
                },
            )
            return AutoBalanceResult(budget_id=budget.budget_id, deficit_minor=deficit)

        description = auto_balance_description(budget.name)
        transfers: list[AutoBalanceTransfer] = []
        for source, amount_minor in zip(sources, allocate(deficit, sources)):
            if amount_minor <= 0:
                continue
            self._store.insert_ledger_entry(
                source.source_budget_id,
                description,
                credit=False,
                amount=from_minor_units(amount_minor),
                actor_id=None,
                now=now,
            )
            transfers.append(AutoBalanceTransfer(source.source_budget_id, amount_minor))

        result = AutoBalanceResult(
            budget_id=budget.budget_id,
            deficit_minor=deficit,
            transfers=tuple(transfers),
        )
        if result.total_minor > 0:
            self._store.insert_ledger_entry(
                budget.budget_id,
                description,
                credit=True,
                amount=from_minor_units(result.total_minor),
                actor_id=None,
                now=now,
            )

        logger.info(
            "auto_balance_applied",
            extra={
                "budget_id": str(budget.budget_id),
                "deficit_minor": deficit,
                "total_minor": result.total_minor,
                "transfers": [
                    {"source_budget_id": str(t.source_budget_id), "amount_minor": t.amount_minor}
                    for t in result.transfers
                ],
            },
        )
        return result
