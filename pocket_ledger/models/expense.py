"""
Module: pocket_ledger.models.expense
Responsibility: ORM persistence for expenses and their line items.
Architecture position: Ledger > Models.  May import from db/ and sibling
    model modules only.

Invariants enforced:
    - status is one of pending, approved, rejected (ck_expense_status);
      new expenses start pending.
    - Only approved expenses subtract from the pocket balance.
    - Every item amount is > 0 (ck_expense_item_amount_positive).
    - Deleting an expense deletes its items (ORM cascade and FK CASCADE).
    - Items reference expense categories only, with ON DELETE RESTRICT.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pocket_ledger.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from pocket_ledger.models.category import ExpenseCategory
    from pocket_ledger.models.pocket import Pocket


class ExpenseStatus(str, Enum):
    """Approval state of an expense."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Expense(TrackedBase):
    """
    Expense header.

    Contract:
        status moves only through ApprovalService.  approved_by holds the
        approving actor while status is approved and is cleared otherwise.
    """

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_expense_status",
        ),
        Index("idx_expense_pocket", "pocket_id"),
        Index("idx_expense_date", "expense_date"),
        Index("idx_expense_status", "status"),
    )

    pocket_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("pockets.id", ondelete="RESTRICT"),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    receipt_ref: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    expense_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # ExpenseStatus value
    status: Mapped[str] = mapped_column(
        String(20),
        default=ExpenseStatus.PENDING.value,
        nullable=False,
    )

    approved_by: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    recorded_by: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Relationships
    pocket: Mapped["Pocket"] = relationship()

    items: Mapped[list["ExpenseItem"]] = relationship(
        back_populates="expense",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ExpenseItem.line_seq",
    )

    def __repr__(self) -> str:
        return f"<Expense {self.id} status={self.status}>"

    @property
    def total_amount(self) -> Decimal:
        """Sum of item amounts."""
        return sum((item.amount for item in self.items), Decimal("0"))

    @property
    def is_approved(self) -> bool:
        return self.status == ExpenseStatus.APPROVED.value


class ExpenseItem(TrackedBase):
    """A categorized amount within an expense."""

    __tablename__ = "expense_items"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_item_amount_positive"),
        Index("idx_expense_item_expense", "expense_id"),
        Index("idx_expense_item_category", "category_id"),
    )

    expense_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False,
    )

    category_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("expense_categories.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    line_seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Relationships
    expense: Mapped["Expense"] = relationship(
        back_populates="items",
    )

    category: Mapped["ExpenseCategory"] = relationship()

    def __repr__(self) -> str:
        return f"<ExpenseItem {self.amount}>"
