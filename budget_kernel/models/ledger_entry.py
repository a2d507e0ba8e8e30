"""
Module: budget_kernel.models.ledger_entry
Responsibility: ORM persistence for ledger entries (a budget's transaction
    history).  Table name ``transacts`` is kept for compatibility with the
    CRUD layer that shares the schema.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - amount > 0 (check constraint; LedgerStore validates first).
    - Engine-written rows are append-only and carry a null actor_id.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from budget_kernel.db.base import TrackedBase, UUIDString


class LedgerEntry(TrackedBase):
    """
    One credit or debit against exactly one budget.

    Guarantees:
        - credit=True adds to the balance, credit=False subtracts.
        - actor_id is None for system-generated entries (payroll, auto-balance).
    """

    __tablename__ = "transacts"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transact_amount_positive"),
        Index("idx_transact_budget", "budget_id"),
    )

    budget_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("budgets.id", ondelete="CASCADE"),
        nullable=False,
    )

    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    description: Mapped[str] = mapped_column(String(255), nullable=False)

    credit: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        side = "CR" if self.credit else "DR"
        return f"<LedgerEntry {side} {self.amount} {self.description!r}>"
