"""Pure domain core: clock, cancellation, money conversions, allocation, DTOs."""

from budget_kernel.domain.allocation import allocate
from budget_kernel.domain.cancellation import CancellationToken
from budget_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from budget_kernel.domain.dtos import (
    AutoBalanceResult,
    AutoBalanceTransfer,
    PayrollBudget,
    WeightedSource,
)
from budget_kernel.domain.values import from_minor_units, round_money, to_minor_units

__all__ = [
    "allocate",
    "CancellationToken",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "AutoBalanceResult",
    "AutoBalanceTransfer",
    "PayrollBudget",
    "WeightedSource",
    "from_minor_units",
    "round_money",
    "to_minor_units",
]
