"""Tests for pocket and category read models."""

from decimal import Decimal
from uuid import uuid4

import pytest

from pocket_ledger.exceptions import CategoryNotFoundError, PocketNotFoundError
from pocket_ledger.models.category import CategoryKind
from pocket_ledger.selectors.pocket_selector import PocketSelector


class TestPocketSummary:
    def test_empty_pocket(self, ledger, viewer, general_pocket):
        summary = ledger.get_pocket_summary(viewer, general_pocket.id)

        assert summary.pocket_name == "General"
        assert summary.total_donations == Decimal("0")
        assert summary.total_approved_expenses == Decimal("0")
        assert summary.balance == Decimal("0")
        assert summary.donation_count == 0
        assert summary.expense_count == 0

    def test_pending_and_rejected_expenses_excluded(
        self, ledger, admin, viewer, make_donation, make_expense, zakat, utilities, general_pocket
    ):
        make_donation((zakat, "99.99"))
        make_expense((utilities, 10))
        rejected = make_expense((utilities, 20))
        ledger.set_approval_status(admin, rejected.id, "rejected")

        summary = ledger.get_pocket_summary(viewer, general_pocket.id)

        assert summary.total_approved_expenses == Decimal("0")
        assert summary.balance == Decimal("99.99")
        assert summary.expense_count == 0

    def test_other_pockets_do_not_leak(
        self, ledger, viewer, make_donation, zakat, general_pocket, building_pocket
    ):
        make_donation((zakat, 5), pocket=building_pocket)

        assert ledger.get_pocket_summary(viewer, general_pocket.id).total_donations == 0

    def test_unknown_pocket(self, ledger, viewer):
        with pytest.raises(PocketNotFoundError):
            ledger.get_pocket_summary(viewer, uuid4())


class TestBalanceAggregation:
    def test_compute_all_includes_pockets_without_transactions(
        self, session, make_donation, zakat, general_pocket, building_pocket
    ):
        make_donation((zakat, 7))

        balances = PocketSelector(session).compute_all_balances()

        assert balances == {
            general_pocket.id: Decimal("7"),
            building_pocket.id: Decimal("0"),
        }


class TestListings:
    def test_pockets_sorted_by_name_and_filtered_by_activity(
        self, ledger, admin, viewer, general_pocket, building_pocket
    ):
        spare = ledger.create_pocket(admin, "Archive")
        ledger.deactivate_pocket(admin, spare.id)

        assert [p.name for p in ledger.list_pockets(viewer)] == ["Building", "General"]
        assert [p.name for p in ledger.list_pockets(viewer, active_only=False)] == [
            "Archive", "Building", "General",
        ]

    def test_categories_listed_per_kind(self, ledger, admin, viewer, zakat, infaq, utilities):
        ledger.deactivate_category(admin, CategoryKind.DONATION, infaq.id)

        assert [c.name for c in ledger.list_categories(viewer, "donation")] == ["Zakat"]
        assert [
            c.name for c in ledger.list_categories(viewer, "donation", active_only=False)
        ] == ["Infaq", "Zakat"]
        assert [c.name for c in ledger.list_categories(viewer, CategoryKind.EXPENSE)] == [
            "Utilities"
        ]

    def test_category_lookup_respects_kind(self, ledger, viewer, zakat):
        assert ledger.get_category(viewer, "donation", zakat.id).name == "Zakat"
        with pytest.raises(CategoryNotFoundError):
            ledger.get_category(viewer, "expense", zakat.id)
