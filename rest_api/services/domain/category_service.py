"""
Category Service.

Usage:
    from rest_api.services.domain import CategoryService

    service = CategoryService(db)
    categories = service.list_ordered()
    category = service.create_with_auto_order(data, user_id, user_email)
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rest_api.models import Category, MenuItem
from rest_api.services.base_service import BaseCRUDService
from shared.utils.admin_schemas import CategoryOutput
from shared.utils.exceptions import ValidationError


class CategoryService(BaseCRUDService[Category, CategoryOutput]):
    """
    Business rules:
    - Order is auto-calculated if not provided
    - A category with active menu items cannot be deleted
    """

    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=Category,
            output_schema=CategoryOutput,
            entity_name="Categoria",
        )

    def list_ordered(
        self,
        *,
        include_inactive: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[CategoryOutput]:
        return self.list_all(
            include_inactive=include_inactive,
            limit=limit,
            offset=offset,
            order_by=[Category.ordem, Category.id],
        )

    def list_visible(self) -> list[Category]:
        """Categories shown on the storefront."""
        return self._repo.find_all(
            filters=[Category.ativo.is_(True)],
            order_by=[Category.ordem, Category.id],
        )

    def get_next_order(self) -> int:
        max_order = self._db.scalar(select(func.max(Category.ordem)).where(Category.is_active.is_(True)))
        return (max_order or 0) + 1

    def create_with_auto_order(
        self,
        data: dict[str, Any],
        user_id: int | None,
        user_email: str | None,
    ) -> CategoryOutput:
        if data.get("ordem") is None:
            data["ordem"] = self.get_next_order()
        return self.create(data, user_id, user_email)

    def _validate_update(self, entity: Category, data: dict[str, Any]) -> None:
        for key in ("nome", "ordem", "ativo"):
            if key in data and data[key] is None:
                data.pop(key)

    def _validate_delete(self, entity: Category) -> None:
        active_items = self._db.scalar(
            select(func.count())
            .select_from(MenuItem)
            .where(MenuItem.category_id == entity.id, MenuItem.is_active.is_(True))
        )
        if active_items:
            raise ValidationError(
                f"A categoria tem {active_items} itens no cardápio. Mova ou exclua os itens primeiro.",
                field="id",
            )
