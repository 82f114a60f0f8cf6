"""
Module: pocket_ledger.selectors.category_selector
Responsibility: Read-side lookups over the donation and expense category
    registries.  Listings default to active categories, ordered by name.
"""

from uuid import UUID

from sqlalchemy import select

from pocket_ledger.domain.dtos import CategoryInfo
from pocket_ledger.models.category import CATEGORY_MODELS, CategoryKind
from pocket_ledger.selectors.base import BaseSelector


class CategorySelector(BaseSelector):
    def get_category(self, kind: CategoryKind | str, category_id: UUID) -> CategoryInfo | None:
        category = self.session.get(CATEGORY_MODELS[CategoryKind(kind)], category_id)
        return CategoryInfo.from_model(category) if category is not None else None

    def list_categories(
        self,
        kind: CategoryKind | str,
        active_only: bool = True,
    ) -> list[CategoryInfo]:
        model = CATEGORY_MODELS[CategoryKind(kind)]
        stmt = select(model).order_by(model.name)
        if active_only:
            stmt = stmt.where(model.is_active.is_(True))
        return [CategoryInfo.from_model(c) for c in self.session.execute(stmt).scalars()]
