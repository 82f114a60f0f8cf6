"""ORM models for the pocket ledger."""

from pocket_ledger.models.category import (
    CATEGORY_MODELS,
    CategoryKind,
    DonationCategory,
    ExpenseCategory,
)
from pocket_ledger.models.donation import Donation, DonationItem, PaymentMethod
from pocket_ledger.models.expense import Expense, ExpenseItem, ExpenseStatus
from pocket_ledger.models.pocket import Pocket

__all__ = [
    "Pocket",
    "CategoryKind",
    "DonationCategory",
    "ExpenseCategory",
    "CATEGORY_MODELS",
    "Donation",
    "DonationItem",
    "PaymentMethod",
    "Expense",
    "ExpenseItem",
    "ExpenseStatus",
]
