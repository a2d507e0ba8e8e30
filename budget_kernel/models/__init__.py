"""ORM models for budgets and their ledger."""

from budget_kernel.models.budget import AutoBalanceSource, Budget, BudgetMember
from budget_kernel.models.ledger_entry import LedgerEntry

__all__ = [
    "Budget",
    "AutoBalanceSource",
    "BudgetMember",
    "LedgerEntry",
]
