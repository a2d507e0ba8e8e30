"""
Immutable snapshots passed between the ledger store and the payroll engine.

ZERO I/O.  Models produce these via ``to_dto()``; nothing downstream of the
store touches ORM instances.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class PayrollBudget:
    """Payroll-relevant view of a budget, read under its row lock."""

    budget_id: UUID
    name: str
    payroll: Decimal
    auto_balance_enabled: bool
    payroll_run_at: datetime | None = None


@dataclass(frozen=True)
class WeightedSource:
    """One auto-balance edge: take ``weight`` shares of a deficit from ``source_budget_id``."""

    source_budget_id: UUID
    weight: int


@dataclass(frozen=True)
class AutoBalanceTransfer:
    """A single source debit produced by an auto-balance run."""

    source_budget_id: UUID
    amount_minor: int


@dataclass(frozen=True)
class AutoBalanceResult:
    """Outcome of topping up one budget before its payroll credit."""

    budget_id: UUID
    deficit_minor: int = 0
    transfers: tuple[AutoBalanceTransfer, ...] = ()

    @property
    def total_minor(self) -> int:
        return sum(t.amount_minor for t in self.transfers)
