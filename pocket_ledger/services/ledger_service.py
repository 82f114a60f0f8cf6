"""
PocketLedgerService -- the single entry point into the ledger.

Responsibility:
    Evaluates the authorization predicate before every operation, binds the
    request log context, delegates to the flush-only services and selectors,
    and owns the transaction boundary.

Invariants enforced:
    - No operation runs without its permission (reads included).
    - Header write, item write and balance recalculation commit together
      or not at all (when auto_commit=True).
    - Every failure is rolled back, logged as ``ledger_operation_failed``
      and re-raised.  Raw SQLAlchemy errors surface as StorageError.

Usage:
    with session_scope() as session:
        ledger = PocketLedgerService(session, auto_commit=False)
        ledger.create_donation(auth, header, items)
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Callable, Sequence, TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pocket_ledger.config import LedgerSettings, get_settings
from pocket_ledger.domain.authorization import AuthContext, Permission, require_permission
from pocket_ledger.domain.dtos import (
    BalanceDrift,
    CategoryInfo,
    DonationFilter,
    DonationHeader,
    DonationInfo,
    DonationPatch,
    ExpenseFilter,
    ExpenseHeader,
    ExpenseInfo,
    ExpensePatch,
    LineItemSpec,
    Page,
    PageRequest,
    PocketInfo,
    PocketSummary,
)
from pocket_ledger.exceptions import (
    CategoryNotFoundError,
    DonationNotFoundError,
    ExpenseNotFoundError,
    PocketNotFoundError,
    StorageError,
)
from pocket_ledger.logging_config import LogContext, get_logger
from pocket_ledger.models.category import CategoryKind
from pocket_ledger.models.expense import ExpenseStatus
from pocket_ledger.selectors.category_selector import CategorySelector
from pocket_ledger.selectors.pocket_selector import PocketSelector
from pocket_ledger.selectors.transaction_selector import TransactionSelector
from pocket_ledger.services.approval_service import ApprovalService
from pocket_ledger.services.balance_service import BalanceService
from pocket_ledger.services.category_service import CategoryService
from pocket_ledger.services.pocket_service import PocketService
from pocket_ledger.services.transaction_service import DonationService, ExpenseService

logger = get_logger("services.ledger")

R = TypeVar("R")


class PocketLedgerService:
    """
    Facade over the pocket, category, transaction, approval and balance
    services.  Every public method takes the caller's AuthContext first.
    """

    def __init__(
        self,
        session: Session,
        settings: LedgerSettings | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._settings = settings or get_settings()
        self._auto_commit = auto_commit

        self._pockets = PocketService(session)
        self._categories = CategoryService(session)
        self._balances = BalanceService(session, self._pockets)
        self._donations = DonationService(
            session, self._pockets, self._categories, self._balances
        )
        self._expenses = ExpenseService(
            session, self._pockets, self._categories, self._balances
        )
        self._approvals = ApprovalService(session, self._expenses, self._balances)

        self._pocket_reader = PocketSelector(session)
        self._category_reader = CategorySelector(session)
        self._transaction_reader = TransactionSelector(
            session,
            default_page_size=self._settings.default_page_size,
            max_page_size=self._settings.max_page_size,
        )

    # -----------------------------------------------------------------
    # Pockets
    # -----------------------------------------------------------------

    def create_pocket(
        self, auth: AuthContext, name: str, description: str | None = None
    ) -> PocketInfo:
        return self._run(
            auth, Permission.REGISTRY_WRITE, "create_pocket",
            lambda: self._pockets.create_pocket(name, description),
        )

    def rename_pocket(
        self,
        auth: AuthContext,
        pocket_id: UUID,
        name: str | None = None,
        description: str | None = None,
    ) -> PocketInfo:
        return self._run(
            auth, Permission.REGISTRY_WRITE, "rename_pocket",
            lambda: self._pockets.rename_pocket(pocket_id, name, description),
        )

    def deactivate_pocket(self, auth: AuthContext, pocket_id: UUID) -> PocketInfo:
        return self._run(
            auth, Permission.REGISTRY_WRITE, "deactivate_pocket",
            lambda: self._pockets.deactivate_pocket(pocket_id),
        )

    def reactivate_pocket(self, auth: AuthContext, pocket_id: UUID) -> PocketInfo:
        return self._run(
            auth, Permission.REGISTRY_WRITE, "reactivate_pocket",
            lambda: self._pockets.reactivate_pocket(pocket_id),
        )

    def delete_pocket(self, auth: AuthContext, pocket_id: UUID) -> None:
        return self._run(
            auth, Permission.REGISTRY_WRITE, "delete_pocket",
            lambda: self._pockets.delete_pocket(pocket_id),
        )

    def get_pocket(self, auth: AuthContext, pocket_id: UUID) -> PocketInfo:
        return self._read(
            auth, "get_pocket",
            lambda: _found(self._pocket_reader.get_pocket(pocket_id),
                           PocketNotFoundError, pocket_id),
        )

    def list_pockets(self, auth: AuthContext, active_only: bool = True) -> list[PocketInfo]:
        return self._read(
            auth, "list_pockets", lambda: self._pocket_reader.list_pockets(active_only)
        )

    def get_pocket_summary(self, auth: AuthContext, pocket_id: UUID) -> PocketSummary:
        return self._read(
            auth, "get_pocket_summary",
            lambda: _found(self._pocket_reader.get_summary(pocket_id),
                           PocketNotFoundError, pocket_id),
        )

    # -----------------------------------------------------------------
    # Categories
    # -----------------------------------------------------------------

    def create_category(
        self,
        auth: AuthContext,
        kind: CategoryKind | str,
        name: str,
        description: str | None = None,
    ) -> CategoryInfo:
        return self._run(
            auth, Permission.REGISTRY_WRITE, "create_category",
            lambda: self._categories.create_category(kind, name, description),
        )

    def rename_category(
        self,
        auth: AuthContext,
        kind: CategoryKind | str,
        category_id: UUID,
        name: str | None = None,
        description: str | None = None,
    ) -> CategoryInfo:
        return self._run(
            auth, Permission.REGISTRY_WRITE, "rename_category",
            lambda: self._categories.rename_category(kind, category_id, name, description),
        )

    def deactivate_category(
        self, auth: AuthContext, kind: CategoryKind | str, category_id: UUID
    ) -> CategoryInfo:
        return self._run(
            auth, Permission.REGISTRY_WRITE, "deactivate_category",
            lambda: self._categories.deactivate_category(kind, category_id),
        )

    def reactivate_category(
        self, auth: AuthContext, kind: CategoryKind | str, category_id: UUID
    ) -> CategoryInfo:
        return self._run(
            auth, Permission.REGISTRY_WRITE, "reactivate_category",
            lambda: self._categories.reactivate_category(kind, category_id),
        )

    def delete_category(
        self, auth: AuthContext, kind: CategoryKind | str, category_id: UUID
    ) -> None:
        return self._run(
            auth, Permission.REGISTRY_WRITE, "delete_category",
            lambda: self._categories.delete_category(kind, category_id),
        )

    def get_category(
        self, auth: AuthContext, kind: CategoryKind | str, category_id: UUID
    ) -> CategoryInfo:
        return self._read(
            auth, "get_category",
            lambda: _found(self._category_reader.get_category(kind, category_id),
                           CategoryNotFoundError, category_id),
        )

    def list_categories(
        self, auth: AuthContext, kind: CategoryKind | str, active_only: bool = True
    ) -> list[CategoryInfo]:
        return self._read(
            auth, "list_categories",
            lambda: self._category_reader.list_categories(kind, active_only),
        )

    # -----------------------------------------------------------------
    # Donations
    # -----------------------------------------------------------------

    def create_donation(
        self,
        auth: AuthContext,
        header: DonationHeader,
        items: Sequence[LineItemSpec],
    ) -> DonationInfo:
        return self._run(
            auth, Permission.TRANSACTION_WRITE, "create_donation",
            lambda: self._donations.create_donation(header, items, auth.actor_id),
        )

    def update_donation(
        self,
        auth: AuthContext,
        donation_id: UUID,
        patch: DonationPatch | None = None,
        items: Sequence[LineItemSpec] | None = None,
    ) -> DonationInfo:
        return self._run(
            auth, Permission.TRANSACTION_WRITE, "update_donation",
            lambda: self._donations.update_donation(donation_id, patch, items),
        )

    def delete_donation(self, auth: AuthContext, donation_id: UUID) -> None:
        return self._run(
            auth, Permission.TRANSACTION_DELETE, "delete_donation",
            lambda: self._donations.delete_donation(donation_id),
        )

    def get_donation(self, auth: AuthContext, donation_id: UUID) -> DonationInfo:
        return self._read(
            auth, "get_donation",
            lambda: _found(self._transaction_reader.get_donation(donation_id),
                           DonationNotFoundError, donation_id),
        )

    def list_donations(
        self,
        auth: AuthContext,
        filters: DonationFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page[DonationInfo]:
        return self._read(
            auth, "list_donations",
            lambda: self._transaction_reader.list_donations(filters, page),
        )

    # -----------------------------------------------------------------
    # Expenses
    # -----------------------------------------------------------------

    def create_expense(
        self,
        auth: AuthContext,
        header: ExpenseHeader,
        items: Sequence[LineItemSpec],
    ) -> ExpenseInfo:
        return self._run(
            auth, Permission.TRANSACTION_WRITE, "create_expense",
            lambda: self._expenses.create_expense(header, items, auth.actor_id),
        )

    def update_expense(
        self,
        auth: AuthContext,
        expense_id: UUID,
        patch: ExpensePatch | None = None,
        items: Sequence[LineItemSpec] | None = None,
    ) -> ExpenseInfo:
        return self._run(
            auth, Permission.TRANSACTION_WRITE, "update_expense",
            lambda: self._expenses.update_expense(expense_id, patch, items),
        )

    def delete_expense(self, auth: AuthContext, expense_id: UUID) -> None:
        return self._run(
            auth, Permission.TRANSACTION_DELETE, "delete_expense",
            lambda: self._expenses.delete_expense(expense_id),
        )

    def set_approval_status(
        self,
        auth: AuthContext,
        expense_id: UUID,
        new_status: ExpenseStatus | str,
    ) -> ExpenseInfo:
        return self._run(
            auth, Permission.EXPENSE_APPROVE, "set_approval_status",
            lambda: self._approvals.set_approval_status(
                expense_id, auth.actor_id, new_status
            ),
        )

    def get_expense(self, auth: AuthContext, expense_id: UUID) -> ExpenseInfo:
        return self._read(
            auth, "get_expense",
            lambda: _found(self._transaction_reader.get_expense(expense_id),
                           ExpenseNotFoundError, expense_id),
        )

    def list_expenses(
        self,
        auth: AuthContext,
        filters: ExpenseFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page[ExpenseInfo]:
        return self._read(
            auth, "list_expenses",
            lambda: self._transaction_reader.list_expenses(filters, page),
        )

    # -----------------------------------------------------------------
    # Balances
    # -----------------------------------------------------------------

    def recalculate_all_balances(self, auth: AuthContext) -> dict[UUID, Decimal]:
        return self._run(
            auth, Permission.LEDGER_RECONCILE, "recalculate_all_balances",
            self._balances.recalculate_all,
        )

    def reconcile_balances(self, auth: AuthContext, fix: bool = False) -> list[BalanceDrift]:
        """Report pockets whose cached balance drifted; repair them when fix=True."""
        return self._run(
            auth, Permission.LEDGER_RECONCILE, "reconcile_balances",
            lambda: self._balances.reconcile(fix=fix),
        )

    # -----------------------------------------------------------------
    # Transaction boundary
    # -----------------------------------------------------------------

    def _read(self, auth: AuthContext, operation: str, fn: Callable[[], R]) -> R:
        return self._run(auth, Permission.LEDGER_READ, operation, fn, mutating=False)

    def _run(
        self,
        auth: AuthContext,
        permission: Permission,
        operation: str,
        fn: Callable[[], R],
        mutating: bool = True,
    ) -> R:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            actor_id=str(auth.actor_id),
            role=auth.role_value,
        ):
            t0 = time.monotonic()
            try:
                require_permission(auth, permission)
                result = fn()
                if self._auto_commit and mutating:
                    self._session.commit()
            except SQLAlchemyError as exc:
                self._fail(operation, t0)
                raise StorageError(operation, type(exc).__name__) from exc
            except Exception:
                self._fail(operation, t0)
                raise

            if mutating:
                logger.info(
                    "ledger_operation_completed",
                    extra={
                        "operation": operation,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
            return result

    def _fail(self, operation: str, t0: float) -> None:
        if self._auto_commit:
            self._session.rollback()
        logger.error(
            "ledger_operation_failed",
            extra={
                "operation": operation,
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            },
            exc_info=True,
        )


def _found(value: R | None, error: type, entity_id: UUID) -> R:
    if value is None:
        raise error(str(entity_id))
    return value
