"""
Transaction services -- donations and expenses with their line items.

Responsibility:
    Create, update, delete and load transaction headers together with the
    line items they own, and trigger balance recalculation for every pocket
    a write touches.

Architecture position:
    Ledger > Services.  Flush-only; PocketLedgerService owns the commit.

Invariants enforced:
    - A transaction always owns at least one item (EmptyItemSetError before
      anything is written).
    - Item amounts are > 0 after rounding to two places.
    - Items reference active categories of the transaction's own kind;
      headers reference an active pocket.
    - Header and items are one logical write.  Items are written inside a
      SAVEPOINT; if that fails the header is deleted again before
      PartialWriteError is raised, so no reader ever sees a header without
      items.
    - Updating items replaces the whole set (delete all, insert all).
    - Moving a transaction to another pocket recalculates both pockets.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import ClassVar, Generic, Iterable, Sequence, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from pocket_ledger.db.types import round_money
from pocket_ledger.domain.dtos import (
    DonationHeader,
    DonationInfo,
    DonationPatch,
    ExpenseHeader,
    ExpenseInfo,
    ExpensePatch,
    LineItemSpec,
    parse_payment_method,
)
from pocket_ledger.exceptions import (
    DonationNotFoundError,
    EmptyItemSetError,
    ExpenseNotFoundError,
    LedgerValidationError,
    NonPositiveAmountError,
    NotFoundError,
    PartialWriteError,
)
from pocket_ledger.logging_config import LogContext, get_logger
from pocket_ledger.models.category import CategoryKind
from pocket_ledger.models.donation import Donation, DonationItem
from pocket_ledger.models.expense import Expense, ExpenseItem, ExpenseStatus
from pocket_ledger.services.balance_service import BalanceService
from pocket_ledger.services.base import BaseService
from pocket_ledger.services.category_service import CategoryService
from pocket_ledger.services.pocket_service import PocketService

logger = get_logger("services.transaction")

HeaderT = TypeVar("HeaderT", Donation, Expense)


class TransactionService(BaseService[HeaderT], Generic[HeaderT]):
    """
    Shared header + line item mechanics.

    Subclasses bind the ORM models, the category kind, and how a header is
    built from and patched by its DTOs.
    """

    header_model: ClassVar[type]
    item_model: ClassVar[type]
    kind: ClassVar[CategoryKind]
    not_found: ClassVar[type[NotFoundError]]

    def __init__(
        self,
        session,
        pockets: PocketService | None = None,
        categories: CategoryService | None = None,
        balances: BalanceService | None = None,
    ):
        super().__init__(session)
        self._pockets = pockets or PocketService(session)
        self._categories = categories or CategoryService(session)
        self._balances = balances or BalanceService(session, self._pockets)

    @property
    def label(self) -> str:
        return self.kind.value

    # -----------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------

    def _create(self, header_fields: dict, pocket_id: UUID, items: Sequence[LineItemSpec]):
        specs = self.validate_items(items)
        self._pockets.resolve_active(pocket_id)

        header = self.header_model(pocket_id=pocket_id, **header_fields)
        with self._storage_guard(f"create_{self.label}"):
            self.session.add(header)
            self.session.flush()

        with LogContext.bind(transaction_id=str(header.id), pocket_id=str(pocket_id)):
            try:
                with self.session.begin_nested():
                    self._write_items(header, specs)
            except SQLAlchemyError as exc:
                self._compensate(header)
                raise PartialWriteError(self.label, str(header.id), type(exc).__name__) from exc

            self._balances.recalculate([pocket_id])
            logger.info(
                f"{self.label}_created",
                extra={
                    "item_count": len(specs),
                    "total_amount": str(sum((s.amount for s in specs), Decimal("0"))),
                },
            )
        return header

    def _update(
        self,
        transaction_id: UUID,
        header_fields: dict,
        new_pocket_id: UUID | None,
        items: Sequence[LineItemSpec] | None,
    ):
        header = self.get_for_update(transaction_id)
        specs = self.validate_items(items) if items is not None else None
        old_pocket_id = header.pocket_id
        if new_pocket_id is not None and new_pocket_id != old_pocket_id:
            self._pockets.resolve_active(new_pocket_id)
            header.pocket_id = new_pocket_id
            # Relationship would otherwise still point at the old pocket.
            self.session.expire(header, ["pocket"])

        with LogContext.bind(transaction_id=str(header.id), pocket_id=str(header.pocket_id)):
            for name, value in header_fields.items():
                setattr(header, name, value)
            with self._storage_guard(f"update_{self.label}"):
                self.session.flush()
                if specs is not None:
                    self._replace_items(header, specs)

            affected = {old_pocket_id, header.pocket_id}
            self._balances.recalculate(affected)
            logger.info(
                f"{self.label}_updated",
                extra={
                    "fields": sorted(header_fields),
                    "items_replaced": specs is not None,
                    "pocket_changed": len(affected) > 1,
                },
            )
        return header

    def delete(self, transaction_id: UUID) -> None:
        """
        Delete a transaction and its items, then recalculate its pocket.

        Raises:
            NotFoundError subclass: no such transaction.
        """
        header = self.get_for_update(transaction_id)
        pocket_id = header.pocket_id
        with LogContext.bind(transaction_id=str(header.id), pocket_id=str(pocket_id)):
            with self._storage_guard(f"delete_{self.label}"):
                self.session.delete(header)
                self.session.flush()
            self._balances.recalculate([pocket_id])
            logger.info(f"{self.label}_deleted")

    # -----------------------------------------------------------------
    # Lookups
    # -----------------------------------------------------------------

    def get_orm(self, transaction_id: UUID):
        header = self.session.get(self.header_model, transaction_id)
        if header is None:
            raise self.not_found(str(transaction_id))
        return header

    def get_for_update(self, transaction_id: UUID):
        header = self.session.execute(
            select(self.header_model)
            .where(self.header_model.id == transaction_id)
            .with_for_update()
        ).scalar_one_or_none()
        if header is None:
            raise self.not_found(str(transaction_id))
        return header

    # -----------------------------------------------------------------
    # Items
    # -----------------------------------------------------------------

    def validate_items(self, items: Iterable[LineItemSpec] | None) -> list[LineItemSpec]:
        """
        Check an item set before anything is written.

        Returns:
            The items with amounts normalized to two decimal places.

        Raises:
            EmptyItemSetError: no items.
            NonPositiveAmountError: an amount is <= 0 after rounding.
            LedgerValidationError: an amount is not a number.
            InvalidReferenceError: a category is missing, inactive, or of
                the other kind.
        """
        items = list(items or ())
        if not items:
            raise EmptyItemSetError()

        normalized: list[LineItemSpec] = []
        for index, spec in enumerate(items):
            try:
                raw = Decimal(str(spec.amount))
                amount = round_money(raw) if raw.is_finite() else None
            except InvalidOperation:
                amount = None
            if amount is None:
                raise LedgerValidationError(
                    f"items[{index}].amount", f"not a number: {spec.amount!r}"
                )
            if amount <= 0:
                raise NonPositiveAmountError(index, str(spec.amount))
            normalized.append(
                LineItemSpec(
                    category_id=spec.category_id,
                    amount=amount,
                    description=spec.description,
                )
            )

        self._categories.resolve_active_many(self.kind, [s.category_id for s in normalized])
        return normalized

    def _write_items(self, header, specs: Sequence[LineItemSpec]) -> None:
        for seq, spec in enumerate(specs):
            header.items.append(
                self.item_model(
                    category_id=spec.category_id,
                    amount=spec.amount,
                    description=spec.description,
                    line_seq=seq,
                )
            )
        self.session.flush()

    def _replace_items(self, header, specs: Sequence[LineItemSpec]) -> None:
        removed = len(header.items)
        header.items.clear()
        self.session.flush()
        self._write_items(header, specs)
        logger.info(
            f"{self.label}_items_replaced",
            extra={"removed_count": removed, "item_count": len(specs)},
        )

    def _compensate(self, header) -> None:
        header_id = header.id
        with self._storage_guard(f"compensate_{self.label}"):
            self.session.delete(header)
            self.session.flush()
        logger.warning(
            "transaction_compensated",
            extra={"kind": self.label, "removed_header_id": str(header_id)},
        )


class DonationService(TransactionService[Donation]):
    """Donations always count toward their pocket's balance."""

    header_model = Donation
    item_model = DonationItem
    kind = CategoryKind.DONATION
    not_found = DonationNotFoundError

    def create_donation(
        self,
        header: DonationHeader,
        items: Sequence[LineItemSpec],
        actor_id: UUID,
    ) -> DonationInfo:
        method = parse_payment_method(header.payment_method)
        donation = self._create(
            {
                "donation_date": header.donation_date,
                "payment_method": method.value,
                "donor_name": header.donor_name,
                "is_anonymous": header.is_anonymous,
                "receipt_ref": header.receipt_ref,
                "notes": header.notes,
                "recorded_by": actor_id,
            },
            header.pocket_id,
            items,
        )
        return DonationInfo.from_model(donation)

    def update_donation(
        self,
        donation_id: UUID,
        patch: DonationPatch | None = None,
        items: Sequence[LineItemSpec] | None = None,
    ) -> DonationInfo:
        patch = patch or DonationPatch()
        fields: dict = {}
        if patch.payment_method is not None:
            fields["payment_method"] = parse_payment_method(patch.payment_method).value
        for name in ("donation_date", "donor_name", "is_anonymous", "receipt_ref", "notes"):
            value = getattr(patch, name)
            if value is not None:
                fields[name] = value
        donation = self._update(donation_id, fields, patch.pocket_id, items)
        return DonationInfo.from_model(donation)

    def delete_donation(self, donation_id: UUID) -> None:
        self.delete(donation_id)


class ExpenseService(TransactionService[Expense]):
    """Expenses start pending; only approved ones count toward the balance."""

    header_model = Expense
    item_model = ExpenseItem
    kind = CategoryKind.EXPENSE
    not_found = ExpenseNotFoundError

    def create_expense(
        self,
        header: ExpenseHeader,
        items: Sequence[LineItemSpec],
        actor_id: UUID,
    ) -> ExpenseInfo:
        if not header.description or not header.description.strip():
            raise LedgerValidationError("description", "must not be empty")
        expense = self._create(
            {
                "description": header.description,
                "expense_date": header.expense_date,
                "receipt_ref": header.receipt_ref,
                "notes": header.notes,
                "status": ExpenseStatus.PENDING.value,
                "recorded_by": actor_id,
            },
            header.pocket_id,
            items,
        )
        return ExpenseInfo.from_model(expense)

    def update_expense(
        self,
        expense_id: UUID,
        patch: ExpensePatch | None = None,
        items: Sequence[LineItemSpec] | None = None,
    ) -> ExpenseInfo:
        patch = patch or ExpensePatch()
        if patch.description is not None and not patch.description.strip():
            raise LedgerValidationError("description", "must not be empty")
        fields = {
            name: getattr(patch, name)
            for name in ("description", "expense_date", "receipt_ref", "notes")
            if getattr(patch, name) is not None
        }
        expense = self._update(expense_id, fields, patch.pocket_id, items)
        return ExpenseInfo.from_model(expense)

    def delete_expense(self, expense_id: UUID) -> None:
        self.delete(expense_id)
