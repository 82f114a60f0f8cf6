"""
Typed Exception Hierarchy for the Pocket Ledger.

Every error has a typed class, a machine-readable ``code`` class attribute,
and carries its context as attributes rather than only in the message.

    PocketLedgerError (base)
    |
    +-- LedgerValidationError           VALIDATION_ERROR
    |   +-- EmptyItemSetError
    |   +-- NonPositiveAmountError
    |   +-- InvalidReferenceError
    |   +-- InvalidApprovalStatusError
    |   +-- InvalidPaymentMethodError
    |   +-- InvalidPageError
    |
    +-- NotFoundError                   NOT_FOUND
    |   +-- PocketNotFoundError
    |   +-- CategoryNotFoundError
    |   +-- DonationNotFoundError
    |   +-- ExpenseNotFoundError
    |
    +-- ConflictError                   CONFLICT
    |   +-- PocketReferencedError
    |   +-- CategoryReferencedError
    |   +-- DuplicateNameError
    |
    +-- AuthorizationError              AUTHORIZATION_ERROR
    |
    +-- StorageError                    DATABASE_ERROR
    |   +-- PartialWriteError
    |
    +-- ApprovalError                   APPROVAL_ERROR
        +-- InvalidApprovalTransitionError

Validation errors are never retried; they always name the offending field.
StorageError wraps ``sqlalchemy.exc.SQLAlchemyError`` (chained with ``from``).
PartialWriteError is raised only after the orphan header has been removed.
"""


class PocketLedgerError(Exception):
    """
    Base exception for all pocket ledger errors.

    All subclasses must have a `code` class attribute.
    """

    code: str = "POCKET_LEDGER_ERROR"


# Validation


class LedgerValidationError(PocketLedgerError):
    """Input failed a ledger rule. Always carries the offending field."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class EmptyItemSetError(LedgerValidationError):
    """A transaction was submitted with no line items."""

    def __init__(self):
        super().__init__("items", "at least one item required")


class NonPositiveAmountError(LedgerValidationError):
    """A line item amount is zero or negative."""

    def __init__(self, index: int, amount: str):
        self.index = index
        self.amount = amount
        super().__init__(
            f"items[{index}].amount",
            f"amount must be greater than zero, got {amount}",
        )


class InvalidReferenceError(LedgerValidationError):
    """A pocket or category id does not resolve to a usable record."""

    def __init__(self, field: str, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(field, f"{entity_type} {entity_id} {reason}")


class InvalidApprovalStatusError(LedgerValidationError):
    """Approval target is not one of approved / rejected."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            "status", f"must be one of approved, rejected; got {value!r}"
        )


class InvalidPaymentMethodError(LedgerValidationError):
    """Donation payment method is not recognized."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            "payment_method", f"must be one of cash, transfer, qris; got {value!r}"
        )


class InvalidPageError(LedgerValidationError):
    """Pagination parameters are out of range."""

    def __init__(self, field: str, value: int, reason: str):
        self.value = value
        super().__init__(field, f"{reason}, got {value}")


# Not found


class NotFoundError(PocketLedgerError):
    """A record with the given id does not exist."""

    code: str = "NOT_FOUND"
    entity_type: str = "record"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_type.capitalize()} not found: {entity_id}")


class PocketNotFoundError(NotFoundError):
    entity_type = "pocket"


class CategoryNotFoundError(NotFoundError):
    entity_type = "category"


class DonationNotFoundError(NotFoundError):
    entity_type = "donation"


class ExpenseNotFoundError(NotFoundError):
    entity_type = "expense"


# Conflict


class ConflictError(PocketLedgerError):
    """Operation conflicts with existing records."""

    code: str = "CONFLICT"


class PocketReferencedError(ConflictError):
    """Pocket cannot be removed while transactions reference it."""

    def __init__(self, pocket_id: str, donation_count: int, expense_count: int):
        self.pocket_id = pocket_id
        self.donation_count = donation_count
        self.expense_count = expense_count
        super().__init__(
            f"Pocket {pocket_id} is referenced by {donation_count} donation(s) "
            f"and {expense_count} expense(s)"
        )


class CategoryReferencedError(ConflictError):
    """Category cannot be removed or deactivated while items reference it."""

    def __init__(self, kind: str, category_id: str, item_count: int):
        self.kind = kind
        self.category_id = category_id
        self.item_count = item_count
        super().__init__(
            f"{kind.capitalize()} category {category_id} is referenced by "
            f"{item_count} line item(s)"
        )


class DuplicateNameError(ConflictError):
    """Name already used within its namespace."""

    def __init__(self, entity_type: str, name: str):
        self.entity_type = entity_type
        self.name = name
        super().__init__(f"{entity_type.capitalize()} name already exists: {name!r}")


# Authorization


class AuthorizationError(PocketLedgerError):
    """Caller's role does not grant the required permission."""

    code: str = "AUTHORIZATION_ERROR"

    def __init__(self, role: str, permission: str, reason: str):
        self.role = role
        self.permission = permission
        self.reason = reason
        super().__init__(f"Role {role!r} lacks {permission}: {reason}")


# Storage


class StorageError(PocketLedgerError):
    """The underlying store failed."""

    code: str = "DATABASE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage failure during {operation}: {detail}")


class PartialWriteError(StorageError):
    """
    Line items failed to persist after the header was written.

    The header has already been removed when this is raised.
    """

    def __init__(self, transaction_kind: str, transaction_id: str, detail: str):
        self.transaction_kind = transaction_kind
        self.transaction_id = transaction_id
        super().__init__(f"create_{transaction_kind}", detail)


# Approval


class ApprovalError(PocketLedgerError):
    """Base exception for approval workflow errors."""

    code: str = "APPROVAL_ERROR"


class InvalidApprovalTransitionError(ApprovalError):
    """The expense's current status has no edge to the requested one."""

    code: str = "INVALID_APPROVAL_TRANSITION"

    def __init__(self, expense_id: str, from_status: str, to_status: str):
        self.expense_id = expense_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Expense {expense_id} cannot move from {from_status} to {to_status}"
        )
