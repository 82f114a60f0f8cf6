"""
Module: pocket_ledger.models.donation
Responsibility: ORM persistence for donations and their line items.
Architecture position: Ledger > Models.  May import from db/ and sibling
    model modules only.

Invariants enforced:
    - A donation owns at least one DonationItem (enforced by the
      transaction service; the table cannot express it).
    - Every item amount is > 0 (ck_donation_item_amount_positive).
    - Deleting a donation deletes its items (ORM cascade and FK CASCADE).
    - Items reference donation categories only, with ON DELETE RESTRICT.
    - total_amount is derived from items and never stored.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
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
    from pocket_ledger.models.category import DonationCategory
    from pocket_ledger.models.pocket import Pocket


class PaymentMethod(str, Enum):
    """How a donation was received."""

    CASH = "cash"
    TRANSFER = "transfer"
    QRIS = "qris"


class Donation(TrackedBase):
    """
    Donation header.  Donations always count toward the pocket balance.
    """

    __tablename__ = "donations"

    __table_args__ = (
        CheckConstraint(
            "payment_method IN ('cash', 'transfer', 'qris')",
            name="ck_donation_payment_method",
        ),
        Index("idx_donation_pocket", "pocket_id"),
        Index("idx_donation_date", "donation_date"),
    )

    pocket_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("pockets.id", ondelete="RESTRICT"),
        nullable=False,
    )

    donor_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    is_anonymous: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # PaymentMethod value
    payment_method: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    receipt_ref: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    notes: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    donation_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    recorded_by: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    # Relationships
    pocket: Mapped["Pocket"] = relationship()

    items: Mapped[list["DonationItem"]] = relationship(
        back_populates="donation",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="DonationItem.line_seq",
    )

    def __repr__(self) -> str:
        return f"<Donation {self.id} {self.donation_date}>"

    @property
    def total_amount(self) -> Decimal:
        """Sum of item amounts."""
        return sum((item.amount for item in self.items), Decimal("0"))


class DonationItem(TrackedBase):
    """A categorized amount within a donation."""

    __tablename__ = "donation_items"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_donation_item_amount_positive"),
        Index("idx_donation_item_donation", "donation_id"),
        Index("idx_donation_item_category", "category_id"),
    )

    donation_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("donations.id", ondelete="CASCADE"),
        nullable=False,
    )

    category_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("donation_categories.id", ondelete="RESTRICT"),
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

    # Position within the donation (for deterministic ordering)
    line_seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Relationships
    donation: Mapped["Donation"] = relationship(
        back_populates="items",
    )

    category: Mapped["DonationCategory"] = relationship()

    def __repr__(self) -> str:
        return f"<DonationItem {self.amount}>"
