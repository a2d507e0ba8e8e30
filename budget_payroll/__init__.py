"""
budget_payroll -- Recurring monthly payroll engine.

Credits each budget's configured payroll once per calendar month, optionally
preceded by an auto-balance transfer from weighted source budgets.  Runs
from an in-process scheduler thread or on demand for a single budget.

Architecture:
    budget_payroll/ is a top-level package built on budget_kernel.
    Nothing in budget_kernel imports from budget_payroll.

Invariants:
    - At most one payroll credit per budget per calendar month unless forced.
    - Every mutation of a run happens in one transaction.
    - Clock injection (no datetime.now() calls outside SystemClock).
    - Cancellation is observed at waits and before transactions only.
"""

__version__ = "0.1.0"
