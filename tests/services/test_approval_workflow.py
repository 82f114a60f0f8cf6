"""
Tests for the expense approval workflow.

Covers:
- pending -> approved / rejected
- approved <-> rejected in both directions
- approved_by stamping and clearing
- Invalid targets
- Balance effect of each transition
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from pocket_ledger.domain.authorization import AuthContext, Role
from pocket_ledger.exceptions import ExpenseNotFoundError, InvalidApprovalStatusError
from pocket_ledger.models import ExpenseStatus


@pytest.fixture
def funded_expense(make_donation, make_expense, zakat, utilities):
    make_donation((zakat, 1000))
    return make_expense((utilities, 300))


class TestTransitions:
    def test_approve_stamps_actor_and_subtracts(
        self, ledger, admin, funded_expense, general_pocket, pocket_balance
    ):
        assert pocket_balance(general_pocket) == Decimal("1000")

        approved = ledger.set_approval_status(admin, funded_expense.id, ExpenseStatus.APPROVED)

        assert approved.status is ExpenseStatus.APPROVED
        assert approved.approved_by == admin.actor_id
        assert pocket_balance(general_pocket) == Decimal("700")

    def test_reject_pending_leaves_balance(
        self, ledger, admin, funded_expense, general_pocket, pocket_balance
    ):
        rejected = ledger.set_approval_status(admin, funded_expense.id, "rejected")

        assert rejected.status is ExpenseStatus.REJECTED
        assert rejected.approved_by is None
        assert pocket_balance(general_pocket) == Decimal("1000")

    def test_approved_to_rejected_clears_stamp_and_restores(
        self, ledger, admin, funded_expense, general_pocket, pocket_balance
    ):
        ledger.set_approval_status(admin, funded_expense.id, "approved")

        rejected = ledger.set_approval_status(admin, funded_expense.id, "rejected")

        assert rejected.approved_by is None
        assert pocket_balance(general_pocket) == Decimal("1000")

    def test_rejected_back_to_approved(
        self, ledger, admin, funded_expense, general_pocket, pocket_balance
    ):
        second_admin = AuthContext(role=Role.ADMIN, actor_id=uuid4())
        ledger.set_approval_status(admin, funded_expense.id, "rejected")

        approved = ledger.set_approval_status(second_admin, funded_expense.id, "approved")

        assert approved.approved_by == second_admin.actor_id
        assert pocket_balance(general_pocket) == Decimal("700")

    def test_reapplying_status_is_idempotent(
        self, ledger, admin, funded_expense, general_pocket, pocket_balance
    ):
        ledger.set_approval_status(admin, funded_expense.id, "approved")
        again = ledger.set_approval_status(admin, funded_expense.id, "approved")

        assert again.status is ExpenseStatus.APPROVED
        assert pocket_balance(general_pocket) == Decimal("700")

    @pytest.mark.parametrize("target", ["pending", "cancelled", ""])
    def test_invalid_target_is_validation_error(
        self, ledger, admin, funded_expense, target
    ):
        with pytest.raises(InvalidApprovalStatusError) as exc_info:
            ledger.set_approval_status(admin, funded_expense.id, target)

        assert exc_info.value.field == "status"
        assert exc_info.value.code == "VALIDATION_ERROR"
        assert ledger.get_expense(admin, funded_expense.id).status is ExpenseStatus.PENDING

    def test_unknown_expense_is_not_found(self, ledger, admin):
        with pytest.raises(ExpenseNotFoundError):
            ledger.set_approval_status(admin, uuid4(), "approved")

    def test_item_replacement_on_approved_expense_updates_balance(
        self, ledger, admin, treasurer, funded_expense, utilities, items,
        general_pocket, pocket_balance,
    ):
        ledger.set_approval_status(admin, funded_expense.id, "approved")

        updated = ledger.update_expense(treasurer, funded_expense.id, items=items((utilities, 50)))

        assert updated.status is ExpenseStatus.APPROVED
        assert pocket_balance(general_pocket) == Decimal("950")
