"""
Typed exception hierarchy for the budget kernel and payroll engine.

Every error carries a ``code`` class attribute (machine-readable, API-safe)
and stores its context as attributes so it survives logging and
serialization.  Callers catch by type, never by message text.

    BudgetKernelError (base)
    |
    +-- ValidationError                 raised before any write
    |   +-- NonPositiveAmountError
    |   +-- InvalidWeightError
    |   +-- SelfReferencingSourceError
    |   +-- DuplicateSourceError
    |   +-- BudgetNotFoundError
    |
    +-- StorageError
    |   +-- ConnectionUnusableError     transient, retried by the payroll runner
    |   +-- DatabaseConnectError
    |
    +-- PayrollError
        +-- PayrollRunCancelledError

Category        | Code                      | When Raised
----------------|---------------------------|----------------------------------------
Validation      | NON_POSITIVE_AMOUNT       | Ledger entry amount <= 0
                | INVALID_WEIGHT            | Auto-balance weight outside [0, 100]
                | SELF_REFERENCING_SOURCE   | Budget listed as its own source
                | DUPLICATE_SOURCE          | Same source budget listed twice
                | BUDGET_NOT_FOUND          | Unknown budget, or actor lacks access
----------------|---------------------------|----------------------------------------
Storage         | CONNECTION_UNUSABLE       | Connection dropped or pool unusable
                | DATABASE_CONNECT_FAILED   | Startup connect retries exhausted
----------------|---------------------------|----------------------------------------
Payroll         | PAYROLL_RUN_CANCELLED     | Cancellation observed before a run
"""

from decimal import Decimal
from uuid import UUID


class BudgetKernelError(Exception):
    """Base exception for all budget kernel errors."""

    code: str = "BUDGET_KERNEL_ERROR"


# Validation errors


class ValidationError(BudgetKernelError):
    """Base exception for caller-visible, non-retryable input errors."""

    code: str = "VALIDATION_ERROR"


class NonPositiveAmountError(ValidationError):
    """Ledger entries must carry a strictly positive amount."""

    code: str = "NON_POSITIVE_AMOUNT"

    def __init__(self, amount: Decimal, budget_id: UUID | None = None):
        self.amount = amount
        self.budget_id = budget_id
        super().__init__(f"Amount must be positive, got {amount}")


class InvalidWeightError(ValidationError):
    """Auto-balance weight outside the accepted range."""

    code: str = "INVALID_WEIGHT"

    def __init__(self, source_budget_id: UUID, weight: int):
        self.source_budget_id = source_budget_id
        self.weight = weight
        super().__init__(
            f"Weight must be between 0 and 100, got {weight} "
            f"for source {source_budget_id}"
        )


class SelfReferencingSourceError(ValidationError):
    """A budget cannot auto-balance from itself."""

    code: str = "SELF_REFERENCING_SOURCE"

    def __init__(self, budget_id: UUID):
        self.budget_id = budget_id
        super().__init__(f"Source budget cannot match target {budget_id}")


class DuplicateSourceError(ValidationError):
    """The same source budget appears more than once in a config."""

    code: str = "DUPLICATE_SOURCE"

    def __init__(self, budget_id: UUID, source_budget_id: UUID):
        self.budget_id = budget_id
        self.source_budget_id = source_budget_id
        super().__init__(
            f"Duplicate source budget {source_budget_id} for {budget_id}"
        )


class BudgetNotFoundError(ValidationError):
    """Budget does not exist or is not visible to the actor.

    Unknown and unauthorized are deliberately indistinguishable.
    """

    code: str = "BUDGET_NOT_FOUND"

    def __init__(self, budget_id: UUID, actor_id: UUID | None = None):
        self.budget_id = budget_id
        self.actor_id = actor_id
        super().__init__(f"Budget not found: {budget_id}")


# Storage errors


class StorageError(BudgetKernelError):
    """Base exception for persistence failures."""

    code: str = "STORAGE_ERROR"


class ConnectionUnusableError(StorageError):
    """The database connection is no longer usable (transient)."""

    code: str = "CONNECTION_UNUSABLE"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Database connection unusable: {reason}")


class DatabaseConnectError(StorageError):
    """Could not reach the database within the configured attempts."""

    code: str = "DATABASE_CONNECT_FAILED"

    def __init__(self, attempts: int, reason: str):
        self.attempts = attempts
        self.reason = reason
        super().__init__(
            f"Failed to connect to database after {attempts} attempts: {reason}"
        )


# Payroll errors


class PayrollError(BudgetKernelError):
    """Base exception for payroll engine errors."""

    code: str = "PAYROLL_ERROR"


class PayrollRunCancelledError(PayrollError):
    """Cancellation was observed before a payroll transaction began."""

    code: str = "PAYROLL_RUN_CANCELLED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Payroll {operation} cancelled")
