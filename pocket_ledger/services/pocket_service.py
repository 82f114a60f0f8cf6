"""
PocketService -- pocket registry mutations.

Responsibility:
    Create, rename, deactivate, reactivate and delete pockets.  Resolves
    pocket references for the transaction services and hands out
    row-locked pockets to the balance engine.

Invariants enforced:
    - Pocket names are unique (DuplicateNameError before the constraint
      fires).
    - A pocket referenced by any donation or expense is never deleted
      (PocketReferencedError; FK ON DELETE RESTRICT backs it up).
    - New transactions may only target active pockets.
"""

from uuid import UUID

from sqlalchemy import func, select

from pocket_ledger.domain.dtos import PocketInfo
from pocket_ledger.exceptions import (
    DuplicateNameError,
    InvalidReferenceError,
    PocketNotFoundError,
    PocketReferencedError,
)
from pocket_ledger.logging_config import get_logger
from pocket_ledger.models.donation import Donation
from pocket_ledger.models.expense import Expense
from pocket_ledger.models.pocket import Pocket
from pocket_ledger.services.base import BaseService

logger = get_logger("services.pocket")


class PocketService(BaseService[Pocket]):
    """Write side of the pocket registry."""

    def create_pocket(self, name: str, description: str | None = None) -> PocketInfo:
        self._ensure_name_free(name)
        pocket = Pocket(name=name, description=description, is_active=True)
        with self._storage_guard("create_pocket"):
            self.session.add(pocket)
            self.session.flush()
            self.session.refresh(pocket)
        logger.info(
            "pocket_created",
            extra={"pocket_id": str(pocket.id), "pocket_name": name},
        )
        return PocketInfo.from_model(pocket)

    def rename_pocket(
        self,
        pocket_id: UUID,
        name: str | None = None,
        description: str | None = None,
    ) -> PocketInfo:
        """Change name and/or description.  None leaves a field unchanged."""
        pocket = self.get_orm(pocket_id)
        if name is not None and name != pocket.name:
            self._ensure_name_free(name)
            pocket.name = name
        if description is not None:
            pocket.description = description
        with self._storage_guard("rename_pocket"):
            self.session.flush()
        logger.info("pocket_renamed", extra={"pocket_id": str(pocket_id)})
        return PocketInfo.from_model(pocket)

    def deactivate_pocket(self, pocket_id: UUID) -> PocketInfo:
        """
        Hide a pocket from new transactions.

        Raises:
            PocketReferencedError: transactions still reference the pocket.
        """
        pocket = self.get_orm(pocket_id)
        self._ensure_unreferenced(pocket_id)
        return self._set_active(pocket, False)

    def reactivate_pocket(self, pocket_id: UUID) -> PocketInfo:
        return self._set_active(self.get_orm(pocket_id), True)

    def delete_pocket(self, pocket_id: UUID) -> None:
        """
        Raises:
            PocketNotFoundError: no such pocket.
            PocketReferencedError: transactions still reference the pocket.
        """
        pocket = self.get_orm(pocket_id)
        self._ensure_unreferenced(pocket_id)
        with self._storage_guard("delete_pocket"):
            self.session.delete(pocket)
            self.session.flush()
        logger.info("pocket_deleted", extra={"pocket_id": str(pocket_id)})

    # -----------------------------------------------------------------
    # Lookups used by other services
    # -----------------------------------------------------------------

    def get_orm(self, pocket_id: UUID) -> Pocket:
        pocket = self.session.get(Pocket, pocket_id)
        if pocket is None:
            raise PocketNotFoundError(str(pocket_id))
        return pocket

    def resolve_active(self, pocket_id: UUID, field: str = "pocket_id") -> Pocket:
        """
        Resolve a pocket reference on a transaction header.

        Raises:
            InvalidReferenceError: missing or inactive pocket.
        """
        pocket = self.session.get(Pocket, pocket_id)
        if pocket is None:
            raise InvalidReferenceError(field, "pocket", str(pocket_id), "does not exist")
        if not pocket.is_active:
            raise InvalidReferenceError(field, "pocket", str(pocket_id), "is inactive")
        return pocket

    def lock_pockets(self, pocket_ids) -> list[Pocket]:
        """
        SELECT ... FOR NO KEY UPDATE the given pockets in id order.

        A fixed lock order keeps two writers that touch the same pair of
        pockets from deadlocking.  The lock is NO KEY so that it does not
        conflict with the KEY SHARE lock a writer already holds on the
        pocket through the foreign key of the header it just inserted;
        two such writers still serialize on each other.
        """
        ids = sorted(set(pocket_ids), key=str)
        if not ids:
            return []
        rows = self.session.execute(
            select(Pocket)
            .where(Pocket.id.in_(ids))
            .order_by(Pocket.id)
            .with_for_update(key_share=True)
            .execution_options(populate_existing=True)
        ).scalars().all()
        found = {row.id for row in rows}
        for pocket_id in ids:
            if pocket_id not in found:
                raise PocketNotFoundError(str(pocket_id))
        return list(rows)

    # -----------------------------------------------------------------

    def _set_active(self, pocket: Pocket, active: bool) -> PocketInfo:
        pocket.is_active = active
        with self._storage_guard("set_pocket_active"):
            self.session.flush()
        logger.info(
            "pocket_activation_changed",
            extra={"pocket_id": str(pocket.id), "is_active": active},
        )
        return PocketInfo.from_model(pocket)

    def _ensure_name_free(self, name: str) -> None:
        exists = self.session.execute(
            select(Pocket.id).where(Pocket.name == name)
        ).first()
        if exists is not None:
            raise DuplicateNameError("pocket", name)

    def _ensure_unreferenced(self, pocket_id: UUID) -> None:
        donations = self.session.execute(
            select(func.count(Donation.id)).where(Donation.pocket_id == pocket_id)
        ).scalar_one()
        expenses = self.session.execute(
            select(func.count(Expense.id)).where(Expense.pocket_id == pocket_id)
        ).scalar_one()
        if donations or expenses:
            raise PocketReferencedError(str(pocket_id), donations, expenses)
