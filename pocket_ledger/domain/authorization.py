"""
Role-based authorization predicate (``pocket_ledger.domain.authorization``).

The ledger evaluates this predicate itself before every operation instead
of relying on the store to enforce row policies.

    admin      every permission
    treasurer  transaction.write, ledger.read
    viewer     ledger.read
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from pocket_ledger.exceptions import AuthorizationError


class Role(str, Enum):
    ADMIN = "admin"
    TREASURER = "treasurer"
    VIEWER = "viewer"


class Permission(str, Enum):
    TRANSACTION_WRITE = "transaction.write"
    TRANSACTION_DELETE = "transaction.delete"
    EXPENSE_APPROVE = "expense.approve"
    REGISTRY_WRITE = "registry.write"
    LEDGER_READ = "ledger.read"
    LEDGER_RECONCILE = "ledger.reconcile"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.TREASURER: frozenset({
        Permission.TRANSACTION_WRITE,
        Permission.LEDGER_READ,
    }),
    Role.VIEWER: frozenset({
        Permission.LEDGER_READ,
    }),
}


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller, supplied per call."""

    role: Role | str
    actor_id: UUID

    @property
    def role_value(self) -> str:
        return self.role.value if isinstance(self.role, Role) else str(self.role)


def check_permission(auth: AuthContext, permission: Permission) -> tuple[bool, str]:
    """Return (allowed, reason).  Unknown roles are denied."""
    try:
        role = Role(auth.role_value)
    except ValueError:
        return False, f"unknown role {auth.role_value!r}"
    if permission in ROLE_PERMISSIONS[role]:
        return True, f"{role.value} holds {permission.value}"
    return False, f"{role.value} does not hold {permission.value}"


def require_permission(auth: AuthContext, permission: Permission) -> None:
    """
    Raises:
        AuthorizationError: the role does not grant permission.
    """
    allowed, reason = check_permission(auth, permission)
    if not allowed:
        raise AuthorizationError(auth.role_value, permission.value, reason)
