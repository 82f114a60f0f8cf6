"""
Module: pocket_ledger.selectors.pocket_selector
Responsibility: Read-side queries over pockets and the line-item aggregates
    that define their balances.

The balance formula lives here and only here:

    balance(pocket) = sum(donation items of the pocket)
                    - sum(expense items of the pocket whose expense is approved)

BalanceService writes the result into Pocket.current_balance; this selector
can also compute it fresh, bypassing the cache, for summaries and
reconciliation.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from pocket_ledger.db.types import to_money
from pocket_ledger.domain.dtos import PocketInfo, PocketSummary
from pocket_ledger.models.donation import Donation, DonationItem
from pocket_ledger.models.expense import Expense, ExpenseItem, ExpenseStatus
from pocket_ledger.models.pocket import Pocket
from pocket_ledger.selectors.base import BaseSelector

_APPROVED = ExpenseStatus.APPROVED.value


class PocketSelector(BaseSelector[Pocket]):
    """Pocket lookups and balance aggregates."""

    def get_pocket(self, pocket_id: UUID) -> PocketInfo | None:
        pocket = self.session.get(Pocket, pocket_id)
        return PocketInfo.from_model(pocket) if pocket is not None else None

    def list_pockets(self, active_only: bool = True) -> list[PocketInfo]:
        """Pockets ordered by name."""
        stmt = select(Pocket).order_by(Pocket.name)
        if active_only:
            stmt = stmt.where(Pocket.is_active.is_(True))
        return [PocketInfo.from_model(p) for p in self.session.execute(stmt).scalars()]

    # -----------------------------------------------------------------
    # Aggregates
    # -----------------------------------------------------------------

    def donation_total(self, pocket_id: UUID) -> Decimal:
        total = self.session.execute(
            select(func.coalesce(func.sum(DonationItem.amount), 0))
            .select_from(DonationItem)
            .join(Donation, DonationItem.donation_id == Donation.id)
            .where(Donation.pocket_id == pocket_id)
        ).scalar_one()
        return to_money(total)

    def approved_expense_total(self, pocket_id: UUID) -> Decimal:
        total = self.session.execute(
            select(func.coalesce(func.sum(ExpenseItem.amount), 0))
            .select_from(ExpenseItem)
            .join(Expense, ExpenseItem.expense_id == Expense.id)
            .where(Expense.pocket_id == pocket_id, Expense.status == _APPROVED)
        ).scalar_one()
        return to_money(total)

    def compute_balance(self, pocket_id: UUID) -> Decimal:
        """Full re-aggregation for one pocket, ignoring the cached value."""
        return self.donation_total(pocket_id) - self.approved_expense_total(pocket_id)

    def compute_all_balances(self) -> dict[UUID, Decimal]:
        """Full re-aggregation for every pocket, two grouped queries."""
        donations = dict(
            self.session.execute(
                select(Donation.pocket_id, func.sum(DonationItem.amount))
                .select_from(DonationItem)
                .join(Donation, DonationItem.donation_id == Donation.id)
                .group_by(Donation.pocket_id)
            ).all()
        )
        expenses = dict(
            self.session.execute(
                select(Expense.pocket_id, func.sum(ExpenseItem.amount))
                .select_from(ExpenseItem)
                .join(Expense, ExpenseItem.expense_id == Expense.id)
                .where(Expense.status == _APPROVED)
                .group_by(Expense.pocket_id)
            ).all()
        )
        pocket_ids = self.session.execute(select(Pocket.id)).scalars().all()
        return {
            pocket_id: to_money(donations.get(pocket_id)) - to_money(expenses.get(pocket_id))
            for pocket_id in pocket_ids
        }

    def get_summary(self, pocket_id: UUID) -> PocketSummary | None:
        """
        Totals and counts for one pocket.

        donation_count counts every donation; expense_count counts approved
        expenses only, matching what the balance includes.
        """
        pocket = self.session.get(Pocket, pocket_id)
        if pocket is None:
            return None
        total_donations = self.donation_total(pocket_id)
        total_expenses = self.approved_expense_total(pocket_id)
        donation_count = self.session.execute(
            select(func.count(Donation.id)).where(Donation.pocket_id == pocket_id)
        ).scalar_one()
        expense_count = self.session.execute(
            select(func.count(Expense.id)).where(
                Expense.pocket_id == pocket_id, Expense.status == _APPROVED
            )
        ).scalar_one()
        return PocketSummary(
            pocket_id=pocket.id,
            pocket_name=pocket.name,
            total_donations=total_donations,
            total_approved_expenses=total_expenses,
            balance=total_donations - total_expenses,
            donation_count=donation_count,
            expense_count=expense_count,
        )
