"""Services for the budget kernel (write side)."""

from budget_kernel.services.auto_balance_service import AutoBalanceConfigService
from budget_kernel.services.ledger_store import LedgerStore, eligible_budgets_statement

__all__ = [
    "AutoBalanceConfigService",
    "LedgerStore",
    "eligible_budgets_statement",
]
