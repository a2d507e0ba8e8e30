"""
AutoBalanceConfigService -- read and replace a budget's auto-balance sources.

Responsibility:
    Validates and persists the weighted source edges consumed by the payroll
    engine's auto-balance step.

Architecture position:
    Kernel > Services.  Called by the CRUD/API layer; the payroll engine only
    reads the resulting edges through LedgerStore.

Invariants enforced:
    - No self-reference, weight in [0, 100], no duplicate source.
    - The actor must have access to the target and to every source.
    - Every check runs before the first write, so a rejected config leaves
      the previous one untouched.
    - Edges with weight 0 are not stored.

Failure modes:
    - SelfReferencingSourceError, InvalidWeightError, DuplicateSourceError,
      BudgetNotFoundError.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from budget_kernel.domain.dtos import WeightedSource
from budget_kernel.exceptions import (
    BudgetNotFoundError,
    DuplicateSourceError,
    InvalidWeightError,
    SelfReferencingSourceError,
)
from budget_kernel.logging_config import get_logger
from budget_kernel.models.budget import AutoBalanceSource, Budget
from budget_kernel.services.ledger_store import LedgerStore

logger = get_logger("services.auto_balance")

MIN_WEIGHT = 0
MAX_WEIGHT = 100


class AutoBalanceConfigService:
    """
    Contract:
        Flush-only, like LedgerStore; the caller commits.
    """

    def __init__(self, session: Session):
        self._session = session
        self._store = LedgerStore(session)

    def get_config(
        self, budget_id: UUID, actor_id: UUID | None = None,
    ) -> tuple[bool, list[WeightedSource]]:
        """Return ``(auto_balance_enabled, sources ordered by source id)``."""
        self._store.ensure_budget_access(budget_id, actor_id)
        budget = self._session.get(Budget, budget_id)
        if budget is None:
            raise BudgetNotFoundError(budget_id, actor_id)
        return budget.auto_balance_enabled, self._store.auto_balance_sources(budget_id)

    def update_config(
        self,
        budget_id: UUID,
        actor_id: UUID | None,
        enabled: bool,
        sources: Sequence[WeightedSource],
    ) -> None:
        """Replace the auto-balance flag and source set for ``budget_id``."""
        self._store.ensure_budget_access(budget_id, actor_id)

        seen: set[UUID] = set()
        for source in sources:
            if source.source_budget_id == budget_id:
                raise SelfReferencingSourceError(budget_id)
            if source.weight < MIN_WEIGHT or source.weight > MAX_WEIGHT:
                raise InvalidWeightError(source.source_budget_id, source.weight)
            if source.source_budget_id in seen:
                raise DuplicateSourceError(budget_id, source.source_budget_id)
            seen.add(source.source_budget_id)
            self._store.ensure_budget_access(source.source_budget_id, actor_id)
            if self._session.get(Budget, source.source_budget_id) is None:
                raise BudgetNotFoundError(source.source_budget_id, actor_id)

        budget = self._session.get(Budget, budget_id)
        if budget is None:
            raise BudgetNotFoundError(budget_id, actor_id)

        budget.auto_balance_enabled = enabled
        # Old edges must be gone before re-inserting the same (target, source) pairs
        budget.auto_balance_sources.clear()
        self._session.flush()
        for source in sources:
            if source.weight <= 0:
                continue
            budget.auto_balance_sources.append(
                AutoBalanceSource(
                    budget_id=budget_id,
                    source_budget_id=source.source_budget_id,
                    weight=source.weight,
                )
            )
        self._session.flush()

        logger.info(
            "auto_balance_config_updated",
            extra={
                "budget_id": str(budget_id),
                "enabled": enabled,
                "source_count": sum(1 for s in sources if s.weight > 0),
            },
        )
