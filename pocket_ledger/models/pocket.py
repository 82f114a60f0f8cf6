"""
Module: pocket_ledger.models.pocket
Responsibility: ORM persistence for pockets -- the named sub-accounts that
    donations and expenses are booked against.
Architecture position: Ledger > Models.  May import from db/ only.

Invariants enforced:
    - name is unique across all pockets (uq_pocket_name).
    - current_balance is a cache.  It is written only by BalanceService and
      always equals donation items minus approved expense items.

Failure modes:
    - PocketReferencedError when deletion is attempted while transactions
      reference the pocket (service guard plus FK ON DELETE RESTRICT).
"""

from decimal import Decimal

from sqlalchemy import Boolean, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from pocket_ledger.db.base import TrackedBase


class Pocket(TrackedBase):
    """
    A named sub-account with a cached balance.

    Guarantees:
        - current_balance starts at zero.
        - is_active controls whether new transactions may target the pocket.
    """

    __tablename__ = "pockets"

    __table_args__ = (
        UniqueConstraint("name", name="uq_pocket_name"),
        Index("idx_pocket_active", "is_active"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Derived: sum(donation items) - sum(approved expense items)
    current_balance: Mapped[Decimal] = mapped_column(
        Numeric(15, 2),
        default=Decimal("0"),
        nullable=False,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Pocket {self.name}: {self.current_balance}>"
