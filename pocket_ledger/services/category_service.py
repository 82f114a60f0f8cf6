"""
CategoryService -- donation and expense category registries.

Invariants enforced:
    - Donation and expense categories are disjoint namespaces; a name is
      unique within its kind only.
    - A category referenced by any line item can be neither deleted nor
      deactivated (CategoryReferencedError).
    - Line items may only reference active categories of their own kind.
"""

from uuid import UUID

from sqlalchemy import func, select

from pocket_ledger.domain.dtos import CategoryInfo
from pocket_ledger.exceptions import (
    CategoryNotFoundError,
    CategoryReferencedError,
    DuplicateNameError,
    InvalidReferenceError,
)
from pocket_ledger.logging_config import get_logger
from pocket_ledger.models.category import CATEGORY_MODELS, CategoryKind
from pocket_ledger.models.donation import DonationItem
from pocket_ledger.models.expense import ExpenseItem
from pocket_ledger.services.base import BaseService

logger = get_logger("services.category")

_ITEM_MODELS = {
    CategoryKind.DONATION: DonationItem,
    CategoryKind.EXPENSE: ExpenseItem,
}


class CategoryService(BaseService):
    """Write side of both category registries."""

    def create_category(
        self,
        kind: CategoryKind | str,
        name: str,
        description: str | None = None,
    ) -> CategoryInfo:
        kind = CategoryKind(kind)
        model = CATEGORY_MODELS[kind]
        self._ensure_name_free(kind, name)
        category = model(name=name, description=description, is_active=True)
        with self._storage_guard("create_category"):
            self.session.add(category)
            self.session.flush()
        logger.info(
            "category_created",
            extra={"kind": kind.value, "category_id": str(category.id), "category_name": name},
        )
        return CategoryInfo.from_model(category)

    def rename_category(
        self,
        kind: CategoryKind | str,
        category_id: UUID,
        name: str | None = None,
        description: str | None = None,
    ) -> CategoryInfo:
        kind = CategoryKind(kind)
        category = self.get_orm(kind, category_id)
        if name is not None and name != category.name:
            self._ensure_name_free(kind, name)
            category.name = name
        if description is not None:
            category.description = description
        with self._storage_guard("rename_category"):
            self.session.flush()
        return CategoryInfo.from_model(category)

    def deactivate_category(self, kind: CategoryKind | str, category_id: UUID) -> CategoryInfo:
        kind = CategoryKind(kind)
        category = self.get_orm(kind, category_id)
        self._ensure_unreferenced(kind, category_id)
        category.is_active = False
        with self._storage_guard("deactivate_category"):
            self.session.flush()
        logger.info(
            "category_deactivated",
            extra={"kind": kind.value, "category_id": str(category_id)},
        )
        return CategoryInfo.from_model(category)

    def reactivate_category(self, kind: CategoryKind | str, category_id: UUID) -> CategoryInfo:
        kind = CategoryKind(kind)
        category = self.get_orm(kind, category_id)
        category.is_active = True
        with self._storage_guard("reactivate_category"):
            self.session.flush()
        return CategoryInfo.from_model(category)

    def delete_category(self, kind: CategoryKind | str, category_id: UUID) -> None:
        kind = CategoryKind(kind)
        category = self.get_orm(kind, category_id)
        self._ensure_unreferenced(kind, category_id)
        with self._storage_guard("delete_category"):
            self.session.delete(category)
            self.session.flush()
        logger.info(
            "category_deleted",
            extra={"kind": kind.value, "category_id": str(category_id)},
        )

    def get_orm(self, kind: CategoryKind, category_id: UUID):
        category = self.session.get(CATEGORY_MODELS[kind], category_id)
        if category is None:
            raise CategoryNotFoundError(str(category_id))
        return category

    def resolve_active_many(self, kind: CategoryKind, category_ids) -> dict:
        """
        Resolve the categories referenced by a set of line items.

        Returns:
            {category_id: category} for every requested id.

        Raises:
            InvalidReferenceError: an id is unknown, inactive, or belongs to
                the other kind.  ``field`` names the first offending item.
        """
        ids = list(category_ids)
        model = CATEGORY_MODELS[kind]
        rows = self.session.execute(
            select(model).where(model.id.in_(set(ids)))
        ).scalars().all() if ids else []
        by_id = {row.id: row for row in rows}
        for index, category_id in enumerate(ids):
            field = f"items[{index}].category_id"
            category = by_id.get(category_id)
            if category is None:
                raise InvalidReferenceError(
                    field,
                    f"{kind.value} category",
                    str(category_id),
                    "does not exist",
                )
            if not category.is_active:
                raise InvalidReferenceError(
                    field,
                    f"{kind.value} category",
                    str(category_id),
                    "is inactive",
                )
        return by_id

    def _ensure_name_free(self, kind: CategoryKind, name: str) -> None:
        model = CATEGORY_MODELS[kind]
        exists = self.session.execute(
            select(model.id).where(model.name == name)
        ).first()
        if exists is not None:
            raise DuplicateNameError(f"{kind.value} category", name)

    def _ensure_unreferenced(self, kind: CategoryKind, category_id: UUID) -> None:
        item_model = _ITEM_MODELS[kind]
        count = self.session.execute(
            select(func.count(item_model.id)).where(item_model.category_id == category_id)
        ).scalar_one()
        if count:
            raise CategoryReferencedError(kind.value, str(category_id), count)
