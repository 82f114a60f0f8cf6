"""
DTOs -- Pure domain data transfer objects for the pocket ledger.

Responsibility:
    Immutable inputs accepted by the services (line item specs, headers,
    patches, filters, page requests) and immutable outputs returned to
    callers (pocket, category, transaction and summary records).

Architecture position:
    Ledger > Domain -- zero I/O.  from_model() class methods are boundary
    converters invoked only from services and selectors.

Invariants enforced:
    - Services return DTOs, never ORM entities.
    - total_amount on transaction records is computed from the items it
      carries; it is never read from storage.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Generic, TypeVar
from uuid import UUID

from pocket_ledger.exceptions import InvalidPaymentMethodError, LedgerValidationError
from pocket_ledger.models.category import CategoryKind
from pocket_ledger.models.donation import PaymentMethod
from pocket_ledger.models.expense import ExpenseStatus

if TYPE_CHECKING:
    from pocket_ledger.models.donation import Donation as DonationModel
    from pocket_ledger.models.expense import Expense as ExpenseModel
    from pocket_ledger.models.pocket import Pocket as PocketModel

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineItemSpec:
    """One categorized amount to be written as a line item."""

    category_id: UUID
    amount: Decimal
    description: str | None = None


@dataclass(frozen=True)
class DonationHeader:
    """Header fields for a new donation."""

    pocket_id: UUID
    donation_date: date
    payment_method: PaymentMethod | str
    donor_name: str | None = None
    is_anonymous: bool = False
    receipt_ref: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DonationPatch:
    """Donation header changes.  None leaves a field unchanged."""

    pocket_id: UUID | None = None
    donation_date: date | None = None
    payment_method: PaymentMethod | str | None = None
    donor_name: str | None = None
    is_anonymous: bool | None = None
    receipt_ref: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class ExpenseHeader:
    """Header fields for a new expense.  Status always starts pending."""

    pocket_id: UUID
    description: str
    expense_date: date
    receipt_ref: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class ExpensePatch:
    """Expense header changes.  None leaves a field unchanged."""

    pocket_id: UUID | None = None
    description: str | None = None
    expense_date: date | None = None
    receipt_ref: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DonationFilter:
    pocket_id: UUID | None = None
    category_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    payment_method: PaymentMethod | str | None = None


@dataclass(frozen=True)
class ExpenseFilter:
    pocket_id: UUID | None = None
    category_id: UUID | None = None
    start_date: date | None = None
    end_date: date | None = None
    status: ExpenseStatus | str | None = None


@dataclass(frozen=True)
class PageRequest:
    """1-based page number; page_size None means the configured default."""

    page: int = 1
    page_size: int | None = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PocketInfo:
    id: UUID
    name: str
    description: str | None
    current_balance: Decimal
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, model: PocketModel) -> PocketInfo:
        return cls(
            id=model.id,
            name=model.name,
            description=model.description,
            current_balance=Decimal(model.current_balance),
            is_active=model.is_active,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass(frozen=True)
class CategoryInfo:
    id: UUID
    kind: CategoryKind
    name: str
    description: str | None
    is_active: bool

    @classmethod
    def from_model(cls, model) -> CategoryInfo:
        return cls(
            id=model.id,
            kind=model.kind,
            name=model.name,
            description=model.description,
            is_active=model.is_active,
        )


@dataclass(frozen=True)
class LineItemInfo:
    id: UUID
    category_id: UUID
    category_name: str
    amount: Decimal
    description: str | None

    @classmethod
    def from_model(cls, model) -> LineItemInfo:
        return cls(
            id=model.id,
            category_id=model.category_id,
            category_name=model.category.name,
            amount=Decimal(model.amount),
            description=model.description,
        )


def _sum_items(items: tuple[LineItemInfo, ...]) -> Decimal:
    return sum((item.amount for item in items), Decimal("0"))


@dataclass(frozen=True)
class DonationInfo:
    """A donation with its items and derived total."""

    id: UUID
    pocket_id: UUID
    pocket_name: str
    donation_date: date
    payment_method: PaymentMethod
    donor_name: str | None
    is_anonymous: bool
    receipt_ref: str | None
    notes: str | None
    recorded_by: UUID
    items: tuple[LineItemInfo, ...]
    created_at: datetime | None = None

    @property
    def total_amount(self) -> Decimal:
        return _sum_items(self.items)

    @classmethod
    def from_model(cls, model: DonationModel) -> DonationInfo:
        return cls(
            id=model.id,
            pocket_id=model.pocket_id,
            pocket_name=model.pocket.name,
            donation_date=model.donation_date,
            payment_method=PaymentMethod(model.payment_method),
            donor_name=model.donor_name,
            is_anonymous=model.is_anonymous,
            receipt_ref=model.receipt_ref,
            notes=model.notes,
            recorded_by=model.recorded_by,
            items=tuple(LineItemInfo.from_model(item) for item in model.items),
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class ExpenseInfo:
    """An expense with its items, approval state and derived total."""

    id: UUID
    pocket_id: UUID
    pocket_name: str
    description: str
    expense_date: date
    status: ExpenseStatus
    approved_by: UUID | None
    receipt_ref: str | None
    notes: str | None
    recorded_by: UUID
    items: tuple[LineItemInfo, ...]
    created_at: datetime | None = None

    @property
    def total_amount(self) -> Decimal:
        return _sum_items(self.items)

    @classmethod
    def from_model(cls, model: ExpenseModel) -> ExpenseInfo:
        return cls(
            id=model.id,
            pocket_id=model.pocket_id,
            pocket_name=model.pocket.name,
            description=model.description,
            expense_date=model.expense_date,
            status=ExpenseStatus(model.status),
            approved_by=model.approved_by,
            receipt_ref=model.receipt_ref,
            notes=model.notes,
            recorded_by=model.recorded_by,
            items=tuple(LineItemInfo.from_model(item) for item in model.items),
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class PocketSummary:
    """Aggregates for one pocket, computed from line items."""

    pocket_id: UUID
    pocket_name: str
    total_donations: Decimal
    total_approved_expenses: Decimal
    balance: Decimal
    donation_count: int
    expense_count: int


@dataclass(frozen=True)
class BalanceDrift:
    """A pocket whose cached balance disagrees with full re-aggregation."""

    pocket_id: UUID
    pocket_name: str
    cached_balance: Decimal
    computed_balance: Decimal

    @property
    def difference(self) -> Decimal:
        return self.cached_balance - self.computed_balance


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of results."""

    items: tuple[T, ...]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


# ---------------------------------------------------------------------------
# Enum normalization
# ---------------------------------------------------------------------------


def parse_payment_method(value: PaymentMethod | str) -> PaymentMethod:
    """
    Raises:
        InvalidPaymentMethodError: value is not cash, transfer or qris.
    """
    raw = value.value if isinstance(value, PaymentMethod) else value
    try:
        return PaymentMethod(raw)
    except ValueError:
        raise InvalidPaymentMethodError(str(raw)) from None


def parse_expense_status(value: ExpenseStatus | str) -> ExpenseStatus:
    """
    Raises:
        LedgerValidationError: value is not pending, approved or rejected.
    """
    raw = value.value if isinstance(value, ExpenseStatus) else value
    try:
        return ExpenseStatus(raw)
    except ValueError:
        raise LedgerValidationError(
            "status", f"must be one of pending, approved, rejected; got {raw!r}"
        ) from None
