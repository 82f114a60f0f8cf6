"""
Approval state machine for expenses (``pocket_ledger.domain.approval``).

Responsibility
--------------
Pure transition table and validators for expense status changes.  ZERO I/O.

Lifecycle
---------
``pending`` is the initial state.  ``approved`` and ``rejected`` both
accept a move to either of the two, including themselves, so an approval
can be revoked and restored.  No edge leads back to ``pending``.

Every stored status has a row in APPROVAL_TRANSITIONS, so a valid target
is always reachable.  validate_transition still refuses a stored status
outside the table: a row written around the ck_expense_status CHECK, or a
status added to ExpenseStatus without an entry here.

Only ``approved`` expenses subtract from the pocket balance; the balance
depends on the current status, never on history.
"""

from __future__ import annotations

from uuid import UUID

from pocket_ledger.exceptions import (
    InvalidApprovalStatusError,
    InvalidApprovalTransitionError,
)
from pocket_ledger.models.expense import ExpenseStatus

APPROVAL_TARGETS: frozenset[ExpenseStatus] = frozenset({
    ExpenseStatus.APPROVED,
    ExpenseStatus.REJECTED,
})

APPROVAL_TRANSITIONS: dict[ExpenseStatus, frozenset[ExpenseStatus]] = {
    ExpenseStatus.PENDING: APPROVAL_TARGETS,
    ExpenseStatus.APPROVED: APPROVAL_TARGETS,
    ExpenseStatus.REJECTED: APPROVAL_TARGETS,
}


def parse_approval_target(value: ExpenseStatus | str) -> ExpenseStatus:
    """
    Normalize a requested status.

    Raises:
        InvalidApprovalStatusError: value is not approved or rejected.
    """
    raw = value.value if isinstance(value, ExpenseStatus) else value
    try:
        status = ExpenseStatus(raw)
    except ValueError:
        raise InvalidApprovalStatusError(str(raw)) from None
    if status not in APPROVAL_TARGETS:
        raise InvalidApprovalStatusError(status.value)
    return status


def validate_transition(
    expense_id: UUID,
    current: ExpenseStatus | str,
    target: ExpenseStatus,
) -> None:
    """
    Guard against a stored status the table does not know.

    Raises:
        InvalidApprovalTransitionError: no edge from current to target.
    """
    current_value = current.value if isinstance(current, ExpenseStatus) else current
    try:
        allowed = APPROVAL_TRANSITIONS[ExpenseStatus(current_value)]
    except (KeyError, ValueError):
        allowed = frozenset()
    if target not in allowed:
        raise InvalidApprovalTransitionError(
            str(expense_id), str(current_value), target.value
        )


def approver_after(target: ExpenseStatus, actor_id: UUID) -> UUID | None:
    """The approved_by stamp an expense carries after moving to target."""
    return actor_id if target is ExpenseStatus.APPROVED else None
