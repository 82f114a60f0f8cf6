"""
Module: pocket_ledger.selectors.transaction_selector
Responsibility: Read-side access to donations and expenses: single lookups
    and filtered, paginated listings.

Listings are newest first (date DESC, created_at DESC, id DESC).  The
category filter matches transactions with at least one item in that
category.  Date bounds are inclusive.  Every returned record carries its
pocket name, its items with category names, and the derived total.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from pocket_ledger.domain.dtos import (
    DonationFilter,
    DonationInfo,
    ExpenseFilter,
    ExpenseInfo,
    Page,
    PageRequest,
    parse_expense_status,
    parse_payment_method,
)
from pocket_ledger.exceptions import InvalidPageError
from pocket_ledger.models.donation import Donation, DonationItem
from pocket_ledger.models.expense import Expense, ExpenseItem
from pocket_ledger.selectors.base import BaseSelector


def resolve_page(
    request: PageRequest | None,
    default_page_size: int,
    max_page_size: int,
) -> tuple[int, int]:
    """
    Returns:
        (page, page_size) with defaults applied.

    Raises:
        InvalidPageError: page < 1 or page_size outside 1..max_page_size.
    """
    request = request or PageRequest()
    page_size = request.page_size if request.page_size is not None else default_page_size
    if request.page < 1:
        raise InvalidPageError("page", request.page, "must be at least 1")
    if not 1 <= page_size <= max_page_size:
        raise InvalidPageError(
            "page_size", page_size, f"must be between 1 and {max_page_size}"
        )
    return request.page, page_size


class TransactionSelector(BaseSelector):
    """Donation and expense queries."""

    def __init__(self, session, default_page_size: int = 20, max_page_size: int = 100):
        super().__init__(session)
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    # -----------------------------------------------------------------
    # Donations
    # -----------------------------------------------------------------

    def get_donation(self, donation_id: UUID) -> DonationInfo | None:
        donation = self.session.get(Donation, donation_id)
        return DonationInfo.from_model(donation) if donation is not None else None

    def list_donations(
        self,
        filters: DonationFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page[DonationInfo]:
        filters = filters or DonationFilter()
        conditions = []
        if filters.pocket_id is not None:
            conditions.append(Donation.pocket_id == filters.pocket_id)
        if filters.start_date is not None:
            conditions.append(Donation.donation_date >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(Donation.donation_date <= filters.end_date)
        if filters.payment_method is not None:
            method = parse_payment_method(filters.payment_method)
            conditions.append(Donation.payment_method == method.value)
        if filters.category_id is not None:
            conditions.append(
                select(DonationItem.id)
                .where(
                    DonationItem.donation_id == Donation.id,
                    DonationItem.category_id == filters.category_id,
                )
                .exists()
            )
        return self._paginate(
            Donation,
            conditions,
            (Donation.donation_date.desc(), Donation.created_at.desc(), Donation.id.desc()),
            DonationInfo.from_model,
            page,
        )

    # -----------------------------------------------------------------
    # Expenses
    # -----------------------------------------------------------------

    def get_expense(self, expense_id: UUID) -> ExpenseInfo | None:
        expense = self.session.get(Expense, expense_id)
        return ExpenseInfo.from_model(expense) if expense is not None else None

    def list_expenses(
        self,
        filters: ExpenseFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page[ExpenseInfo]:
        filters = filters or ExpenseFilter()
        conditions = []
        if filters.pocket_id is not None:
            conditions.append(Expense.pocket_id == filters.pocket_id)
        if filters.start_date is not None:
            conditions.append(Expense.expense_date >= filters.start_date)
        if filters.end_date is not None:
            conditions.append(Expense.expense_date <= filters.end_date)
        if filters.status is not None:
            conditions.append(Expense.status == parse_expense_status(filters.status).value)
        if filters.category_id is not None:
            conditions.append(
                select(ExpenseItem.id)
                .where(
                    ExpenseItem.expense_id == Expense.id,
                    ExpenseItem.category_id == filters.category_id,
                )
                .exists()
            )
        return self._paginate(
            Expense,
            conditions,
            (Expense.expense_date.desc(), Expense.created_at.desc(), Expense.id.desc()),
            ExpenseInfo.from_model,
            page,
        )

    # -----------------------------------------------------------------

    def _paginate(self, model, conditions, order_by, to_dto, page_request) -> Page:
        page, page_size = resolve_page(
            page_request, self.default_page_size, self.max_page_size
        )
        total = self.session.execute(
            select(func.count(model.id)).where(*conditions)
        ).scalar_one()
        rows = self.session.execute(
            select(model)
            .where(*conditions)
            .order_by(*order_by)
            .limit(page_size)
            .offset((page - 1) * page_size)
        ).scalars().all()
        return Page(
            items=tuple(to_dto(row) for row in rows),
            page=page,
            page_size=page_size,
            total=total,
        )
