"""
ApprovalService -- moves expenses through the approval workflow.

Invariants enforced:
    - Targets are approved or rejected only; anything else is a
      validation error on ``status``.
    - approved_by is set to the acting admin on approval and cleared on
      rejection.
    - Every status change, including re-applying the current status,
      recalculates the expense's pocket in the same transaction.
"""

from uuid import UUID

from pocket_ledger.domain.approval import (
    approver_after,
    parse_approval_target,
    validate_transition,
)
from pocket_ledger.domain.dtos import ExpenseInfo
from pocket_ledger.logging_config import LogContext, get_logger
from pocket_ledger.models.expense import Expense, ExpenseStatus
from pocket_ledger.services.balance_service import BalanceService
from pocket_ledger.services.base import BaseService
from pocket_ledger.services.transaction_service import ExpenseService

logger = get_logger("services.approval")


class ApprovalService(BaseService[Expense]):
    def __init__(
        self,
        session,
        expenses: ExpenseService | None = None,
        balances: BalanceService | None = None,
    ):
        super().__init__(session)
        self._expenses = expenses or ExpenseService(session)
        self._balances = balances or BalanceService(session)

    def set_approval_status(
        self,
        expense_id: UUID,
        actor_id: UUID,
        new_status: ExpenseStatus | str,
    ) -> ExpenseInfo:
        """
        Approve or reject an expense.

        Raises:
            InvalidApprovalStatusError: new_status is not approved/rejected.
            ExpenseNotFoundError: no such expense.
        """
        target = parse_approval_target(new_status)
        expense = self._expenses.get_for_update(expense_id)
        previous = expense.status
        validate_transition(expense.id, previous, target)

        with LogContext.bind(transaction_id=str(expense.id), pocket_id=str(expense.pocket_id)):
            expense.status = target.value
            expense.approved_by = approver_after(target, actor_id)
            with self._storage_guard("set_approval_status"):
                self.session.flush()
            self._balances.recalculate([expense.pocket_id])
            logger.info(
                "expense_status_changed",
                extra={
                    "from_status": previous,
                    "to_status": target.value,
                    "approved_by": str(expense.approved_by) if expense.approved_by else None,
                },
            )
        return ExpenseInfo.from_model(expense)
