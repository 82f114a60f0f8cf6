"""Write-side services.  PocketLedgerService is the public entry point."""

from pocket_ledger.services.approval_service import ApprovalService
from pocket_ledger.services.balance_service import BalanceService
from pocket_ledger.services.category_service import CategoryService
from pocket_ledger.services.ledger_service import PocketLedgerService
from pocket_ledger.services.pocket_service import PocketService
from pocket_ledger.services.transaction_service import DonationService, ExpenseService

__all__ = [
    "PocketLedgerService",
    "PocketService",
    "CategoryService",
    "BalanceService",
    "DonationService",
    "ExpenseService",
    "ApprovalService",
]
