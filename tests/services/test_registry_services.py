"""
Tests for the pocket and category registries.

Covers:
- Create, rename, deactivate, reactivate, delete
- Name uniqueness (per kind for categories)
- Conflict when removing or deactivating referenced entries
- Listing defaults to active entries, ordered by name
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from pocket_ledger.exceptions import (
    CategoryNotFoundError,
    CategoryReferencedError,
    ConflictError,
    DuplicateNameError,
    InvalidReferenceError,
    PocketNotFoundError,
    PocketReferencedError,
)
from pocket_ledger.models.category import CategoryKind


class TestPocketRegistry:
    def test_create_pocket_starts_at_zero(self, ledger, admin):
        pocket = ledger.create_pocket(admin, "General", "General fund")

        assert pocket.name == "General"
        assert pocket.description == "General fund"
        assert pocket.current_balance == Decimal("0")
        assert pocket.is_active is True

    def test_duplicate_pocket_name_is_conflict(self, ledger, admin, general_pocket):
        with pytest.raises(DuplicateNameError) as exc_info:
            ledger.create_pocket(admin, "General")
        assert exc_info.value.code == "CONFLICT"

    def test_rename_pocket(self, ledger, admin, general_pocket):
        renamed = ledger.rename_pocket(admin, general_pocket.id, name="Kas Umum")

        assert renamed.name == "Kas Umum"
        assert renamed.description == "General fund"
        assert ledger.get_pocket(admin, general_pocket.id).name == "Kas Umum"

    def test_rename_to_taken_name_is_conflict(
        self, ledger, admin, general_pocket, building_pocket
    ):
        with pytest.raises(DuplicateNameError):
            ledger.rename_pocket(admin, building_pocket.id, name="General")

    def test_list_pockets_active_only_by_name(
        self, ledger, admin, general_pocket, building_pocket
    ):
        ledger.create_pocket(admin, "Archive")
        archive = [p for p in ledger.list_pockets(admin) if p.name == "Archive"][0]
        ledger.deactivate_pocket(admin, archive.id)

        assert [p.name for p in ledger.list_pockets(admin)] == ["Building", "General"]
        assert [p.name for p in ledger.list_pockets(admin, active_only=False)] == [
            "Archive",
            "Building",
            "General",
        ]

    def test_deactivate_and_reactivate(self, ledger, admin, general_pocket):
        assert ledger.deactivate_pocket(admin, general_pocket.id).is_active is False
        assert ledger.reactivate_pocket(admin, general_pocket.id).is_active is True

    def test_inactive_pocket_rejects_new_transactions(
        self, ledger, admin, general_pocket, zakat, make_donation
    ):
        ledger.deactivate_pocket(admin, general_pocket.id)

        with pytest.raises(InvalidReferenceError) as exc_info:
            make_donation((zakat, 100))
        assert exc_info.value.field == "pocket_id"

    def test_delete_unreferenced_pocket(self, ledger, admin, general_pocket):
        ledger.delete_pocket(admin, general_pocket.id)

        with pytest.raises(PocketNotFoundError):
            ledger.get_pocket(admin, general_pocket.id)

    def test_delete_referenced_pocket_is_conflict(
        self, ledger, admin, general_pocket, zakat, make_donation
    ):
        make_donation((zakat, 100))

        with pytest.raises(PocketReferencedError) as exc_info:
            ledger.delete_pocket(admin, general_pocket.id)
        assert exc_info.value.donation_count == 1
        assert exc_info.value.expense_count == 0
        assert ledger.get_pocket(admin, general_pocket.id).current_balance == Decimal("100")

    def test_deactivate_referenced_pocket_is_conflict(
        self, ledger, admin, general_pocket, utilities, make_expense
    ):
        make_expense((utilities, 100))

        with pytest.raises(ConflictError):
            ledger.deactivate_pocket(admin, general_pocket.id)
        assert ledger.get_pocket(admin, general_pocket.id).is_active is True

    def test_unknown_pocket_is_not_found(self, ledger, admin):
        with pytest.raises(PocketNotFoundError) as exc_info:
            ledger.get_pocket(admin, uuid4())
        assert exc_info.value.code == "NOT_FOUND"


class TestCategoryRegistry:
    def test_create_category(self, ledger, admin):
        category = ledger.create_category(admin, "donation", "Zakat", "Zakat mal")

        assert category.kind is CategoryKind.DONATION
        assert category.name == "Zakat"
        assert category.is_active is True

    def test_names_unique_within_kind_only(self, ledger, admin, zakat):
        with pytest.raises(DuplicateNameError):
            ledger.create_category(admin, CategoryKind.DONATION, "Zakat")

        other = ledger.create_category(admin, CategoryKind.EXPENSE, "Zakat")
        assert other.kind is CategoryKind.EXPENSE

    def test_kinds_are_disjoint(self, ledger, admin, zakat):
        with pytest.raises(CategoryNotFoundError):
            ledger.get_category(admin, CategoryKind.EXPENSE, zakat.id)

    def test_list_categories_defaults_to_active(self, ledger, admin, zakat, infaq):
        ledger.deactivate_category(admin, CategoryKind.DONATION, infaq.id)

        active = ledger.list_categories(admin, CategoryKind.DONATION)
        everything = ledger.list_categories(admin, CategoryKind.DONATION, active_only=False)

        assert [c.name for c in active] == ["Zakat"]
        assert [c.name for c in everything] == ["Infaq", "Zakat"]
        assert ledger.list_categories(admin, CategoryKind.EXPENSE) == []

    def test_rename_category(self, ledger, admin, utilities):
        renamed = ledger.rename_category(
            admin, CategoryKind.EXPENSE, utilities.id, name="Utilitas", description="Listrik, air"
        )
        assert renamed.name == "Utilitas"
        assert renamed.description == "Listrik, air"

    def test_inactive_category_rejected_on_items(
        self, ledger, admin, infaq, zakat, make_donation
    ):
        ledger.deactivate_category(admin, CategoryKind.DONATION, infaq.id)

        with pytest.raises(InvalidReferenceError) as exc_info:
            make_donation((zakat, 10), (infaq, 10))
        assert exc_info.value.field == "items[1].category_id"

        ledger.reactivate_category(admin, CategoryKind.DONATION, infaq.id)
        assert make_donation((zakat, 10), (infaq, 10)).total_amount == Decimal("20")

    def test_delete_unreferenced_category(self, ledger, admin, zakat):
        ledger.delete_category(admin, CategoryKind.DONATION, zakat.id)

        assert ledger.list_categories(admin, CategoryKind.DONATION, active_only=False) == []

    def test_delete_referenced_category_is_conflict(
        self, ledger, admin, zakat, make_donation
    ):
        make_donation((zakat, 10), (zakat, 5))

        with pytest.raises(CategoryReferencedError) as exc_info:
            ledger.delete_category(admin, CategoryKind.DONATION, zakat.id)
        assert exc_info.value.item_count == 2

    def test_deactivate_referenced_category_is_conflict(
        self, ledger, admin, utilities, make_expense
    ):
        make_expense((utilities, 10))

        with pytest.raises(CategoryReferencedError):
            ledger.deactivate_category(admin, CategoryKind.EXPENSE, utilities.id)

    def test_unknown_category_is_not_found(self, ledger, admin):
        with pytest.raises(CategoryNotFoundError):
            ledger.delete_category(admin, CategoryKind.EXPENSE, uuid4())
