"""
Module: budget_kernel.models.budget
Responsibility: ORM persistence for budgets, their auto-balance source edges,
    and the membership rows that grant actors access to a budget.
Architecture position: Kernel > Models.  May import from db/ and domain/dtos.

Invariants enforced:
    - payroll >= 0 (check constraint).
    - Auto-balance edge: source != target, weight in [0, 100], at most one
      edge per (target, source) pair.
    - payroll_run_at is written only by the payroll engine and never moves
      backwards (LedgerStore.mark_payroll_run).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from budget_kernel.db.base import Base, TrackedBase, UUIDString
from budget_kernel.db.types import UTCDateTime
from budget_kernel.domain.dtos import PayrollBudget, WeightedSource


class Budget(TrackedBase):
    """
    A named pot of money with an optional monthly payroll credit.

    Guarantees:
        - balance is never stored; it is derived from ledger entries.
        - payroll_run_at is None until the first successful payroll run.
    """

    __tablename__ = "budgets"

    __table_args__ = (
        CheckConstraint("payroll >= 0", name="ck_budget_payroll_non_negative"),
        Index("idx_budget_payroll_run", "payroll", "payroll_run_at"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Monthly credit amount; 0 disables payroll for this budget
    payroll: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    # Run marker: last successful payroll application
    payroll_run_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(),
        nullable=True,
    )

    auto_balance_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    auto_balance_sources: Mapped[list["AutoBalanceSource"]] = relationship(
        "AutoBalanceSource",
        foreign_keys="AutoBalanceSource.budget_id",
        order_by="AutoBalanceSource.source_budget_id",
        cascade="all, delete-orphan",
        back_populates="budget",
    )

    def to_dto(self) -> PayrollBudget:
        return PayrollBudget(
            budget_id=self.id,
            name=self.name,
            payroll=self.payroll,
            auto_balance_enabled=self.auto_balance_enabled,
            payroll_run_at=self.payroll_run_at,
        )

    def __repr__(self) -> str:
        return f"<Budget {self.name} payroll={self.payroll}>"


class AutoBalanceSource(Base):
    """Directed, weighted edge: ``budget_id`` may draw from ``source_budget_id``."""

    __tablename__ = "budget_auto_balance_sources"

    __table_args__ = (
        UniqueConstraint(
            "budget_id", "source_budget_id", name="uq_auto_balance_source_pair"
        ),
        CheckConstraint(
            "budget_id <> source_budget_id", name="ck_auto_balance_not_self"
        ),
        CheckConstraint(
            "weight >= 0 AND weight <= 100", name="ck_auto_balance_weight_range"
        ),
    )

    budget_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("budgets.id", ondelete="CASCADE"),
        nullable=False,
    )

    source_budget_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("budgets.id", ondelete="CASCADE"),
        nullable=False,
    )

    weight: Mapped[int] = mapped_column(Integer, nullable=False)

    budget: Mapped["Budget"] = relationship(
        "Budget",
        foreign_keys=[budget_id],
        back_populates="auto_balance_sources",
    )

    def to_dto(self) -> WeightedSource:
        return WeightedSource(
            source_budget_id=self.source_budget_id,
            weight=self.weight,
        )


class BudgetMember(Base):
    """Grants ``user_id`` access to ``budget_id``.  Owned by the CRUD/auth layer."""

    __tablename__ = "users_budgets"

    __table_args__ = (
        UniqueConstraint("budget_id", "user_id", name="uq_users_budgets_pair"),
        Index("idx_users_budgets_user", "user_id"),
    )

    budget_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("budgets.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
