"""Read-only selectors for the pocket ledger."""

from pocket_ledger.selectors.category_selector import CategorySelector
from pocket_ledger.selectors.pocket_selector import PocketSelector
from pocket_ledger.selectors.transaction_selector import TransactionSelector

__all__ = ["CategorySelector", "PocketSelector", "TransactionSelector"]
