"""
Module: pocket_ledger.models.category
Responsibility: ORM persistence for the two disjoint category registries
    (donation categories and expense categories).
Architecture position: Ledger > Models.  May import from db/ only.

Invariants enforced:
    - Names are unique within a kind; the two kinds are separate tables,
      so the same name may exist once per kind.
    - Line items reference categories with ON DELETE RESTRICT.
"""

from enum import Enum
from typing import ClassVar

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pocket_ledger.db.base import TrackedBase


class CategoryKind(str, Enum):
    """Which registry a category belongs to."""

    DONATION = "donation"
    EXPENSE = "expense"


class _CategoryColumns(TrackedBase):
    """Columns shared by both category registries."""

    __abstract__ = True

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    kind: ClassVar[CategoryKind]

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class DonationCategory(_CategoryColumns):
    """Category for donation line items (Zakat, Infaq, ...)."""

    __tablename__ = "donation_categories"

    kind = CategoryKind.DONATION


class ExpenseCategory(_CategoryColumns):
    """Category for expense line items (Utilities, Maintenance, ...)."""

    __tablename__ = "expense_categories"

    kind = CategoryKind.EXPENSE


CATEGORY_MODELS: dict[CategoryKind, type[_CategoryColumns]] = {
    CategoryKind.DONATION: DonationCategory,
    CategoryKind.EXPENSE: ExpenseCategory,
}
