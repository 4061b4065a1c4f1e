"""
Menu Item Service.

Handles menu item CRUD, gallery images and complement group links, plus
the storefront menu read.

Usage:
    from rest_api.services.domain import MenuItemService

    service = MenuItemService(db)
    menu = service.storefront_menu()
    item = service.create(data, user_id, user_email)
"""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from rest_api.models import Category, ComplementGroup, MenuItem, MenuItemComplement
from rest_api.services.base_service import BaseCRUDService
from shared.config.logging import catalog_logger as logger
from shared.utils.admin_schemas import MenuItemOutput
from shared.utils.exceptions import ValidationError
from shared.utils.schemas import (
    CategoryPublicOutput,
    ComplementGroupOutput,
    MenuItemPublicOutput,
    MenuOutput,
)
from shared.utils.validators import escape_like_pattern, validate_image_url

MAX_GALLERY_IMAGES = 10


def _load_complements():
    return selectinload(MenuItem.complement_links).selectinload(MenuItemComplement.group).selectinload(
        ComplementGroup.options
    )


def parse_image_urls(raw: str | None) -> list[str]:
    """Gallery column is a JSON array; anything else reads as empty."""
    if not raw:
        return []
    try:
        urls = json.loads(raw)
    except ValueError:
        logger.warning("Malformed image_urls column", value=raw[:80])
        return []
    return [u for u in urls if isinstance(u, str)] if isinstance(urls, list) else []


class MenuItemService(BaseCRUDService[MenuItem, MenuItemOutput]):
    """
    Business rules:
    - Price is positive integer cents
    - Category, when given, must exist
    - Complement group links are replaced as a set
    - Existing orders keep their own name/price snapshots
    """

    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=MenuItem,
            output_schema=MenuItemOutput,
            entity_name="Item do cardápio",
        )

    # =========================================================================
    # Query Methods
    # =========================================================================

    def list_admin(
        self,
        *,
        category_id: int | None = None,
        search: str | None = None,
        include_inactive: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[MenuItemOutput]:
        filters = []
        if category_id is not None:
            filters.append(MenuItem.category_id == category_id)
        if search and search.strip():
            pattern = f"%{escape_like_pattern(search.strip())}%"
            filters.append(
                or_(
                    MenuItem.nome.ilike(pattern, escape="\\"),
                    MenuItem.descricao.ilike(pattern, escape="\\"),
                )
            )
        return self.list_all(
            filters=filters,
            options=[selectinload(MenuItem.complement_links)],
            include_inactive=include_inactive,
            limit=min(max(1, limit), 500),
            offset=max(0, offset),
            order_by=[MenuItem.ordem, MenuItem.nome],
        )

    def storefront_menu(self) -> MenuOutput:
        """Visible categories and available items with their complement groups."""
        categories = self._db.scalars(
            select(Category)
            .where(Category.is_active.is_(True), Category.ativo.is_(True))
            .order_by(Category.ordem, Category.id)
        ).all()
        items = self._db.scalars(
            select(MenuItem)
            .options(_load_complements())
            .where(MenuItem.is_active.is_(True), MenuItem.ativo.is_(True))
            .order_by(MenuItem.destaque.desc(), MenuItem.ordem, MenuItem.nome)
        ).all()

        visible_category_ids = {c.id for c in categories}
        return MenuOutput(
            categories=[CategoryPublicOutput.model_validate(c) for c in categories],
            items=[
                self.to_public_output(item)
                for item in items
                if item.category_id is None or item.category_id in visible_category_ids
            ],
        )

    # =========================================================================
    # Transformation
    # =========================================================================

    def to_output(self, entity: MenuItem) -> MenuItemOutput:
        return MenuItemOutput(
            id=entity.id,
            nome=entity.nome,
            descricao=entity.descricao,
            price_cents=entity.price_cents,
            image_url=entity.image_url,
            image_urls=parse_image_urls(entity.image_urls),
            category_id=entity.category_id,
            ativo=entity.ativo,
            destaque=entity.destaque,
            ordem=entity.ordem,
            complement_group_ids=sorted(link.complement_group_id for link in entity.complement_links),
            created_at=entity.created_at,
        )

    def to_public_output(self, entity: MenuItem) -> MenuItemPublicOutput:
        return MenuItemPublicOutput(
            id=entity.id,
            nome=entity.nome,
            descricao=entity.descricao,
            price_cents=entity.price_cents,
            image_url=entity.image_url,
            image_urls=parse_image_urls(entity.image_urls),
            category_id=entity.category_id,
            destaque=entity.destaque,
            complement_groups=[ComplementGroupOutput.model_validate(g) for g in entity.complement_groups],
        )

    # =========================================================================
    # Validation Hooks
    # =========================================================================

    def _check_category(self, category_id: int | None) -> None:
        if category_id is None:
            return
        exists = self._db.scalar(
            select(Category.id).where(Category.id == category_id, Category.is_active.is_(True))
        )
        if exists is None:
            raise ValidationError("Categoria inválida", field="category_id")

    def _prepare_gallery(self, data: dict[str, Any]) -> None:
        if "image_urls" not in data:
            return
        urls = data["image_urls"] or []
        if len(urls) > MAX_GALLERY_IMAGES:
            raise ValidationError(f"Máximo de {MAX_GALLERY_IMAGES} imagens", field="image_urls")
        try:
            cleaned = [u for u in (validate_image_url(url) for url in urls) if u]
        except ValueError as e:
            raise ValidationError(str(e), field="image_urls")
        data["image_urls"] = json.dumps(cleaned) if cleaned else None

    def _check_groups(self, group_ids: list[int]) -> set[int]:
        wanted = set(group_ids)
        if not wanted:
            return wanted
        found = set(
            self._db.scalars(
                select(ComplementGroup.id).where(
                    ComplementGroup.id.in_(wanted), ComplementGroup.is_active.is_(True)
                )
            )
        )
        missing = wanted - found
        if missing:
            raise ValidationError(
                f"Grupos de complementos inexistentes: {sorted(missing)}",
                field="complement_group_ids",
            )
        return wanted

    def _validate_create(self, data: dict[str, Any]) -> None:
        self._check_category(data.get("category_id"))
        self._prepare_gallery(data)
        data["complement_group_ids"] = self._check_groups(data.get("complement_group_ids") or [])

    def _validate_update(self, entity: MenuItem, data: dict[str, Any]) -> None:
        for key in ("nome", "price_cents", "ativo", "destaque", "ordem"):
            if key in data and data[key] is None:
                data.pop(key)
        if "category_id" in data:
            self._check_category(data["category_id"])
        self._prepare_gallery(data)
        if data.get("complement_group_ids") is not None:
            data["complement_group_ids"] = self._check_groups(data["complement_group_ids"])
        else:
            data.pop("complement_group_ids", None)

    # =========================================================================
    # Lifecycle Hooks
    # =========================================================================

    def _sync_links(self, entity: MenuItem, group_ids: set[int]) -> None:
        """Make the item's links equal to group_ids, touching only the difference."""
        current = {link.complement_group_id: link for link in entity.complement_links}
        for group_id, link in current.items():
            if group_id not in group_ids:
                entity.complement_links.remove(link)
        for group_id in sorted(group_ids - set(current)):
            entity.complement_links.append(MenuItemComplement(complement_group_id=group_id))

    def _before_commit_create(self, entity: MenuItem, data: dict[str, Any]) -> None:
        self._sync_links(entity, data.get("complement_group_ids") or set())

    def _before_commit_update(self, entity: MenuItem, data: dict[str, Any]) -> None:
        if "complement_group_ids" in data:
            self._sync_links(entity, data["complement_group_ids"])

    def _after_update(
        self,
        entity: MenuItem,
        old_values: dict[str, Any],
        user_id: int | None,
        user_email: str | None,
    ) -> None:
        if "price_cents" in old_values and old_values["price_cents"] != entity.price_cents:
            logger.info(
                "Menu item price changed",
                menu_item_id=entity.id,
                old_price_cents=old_values["price_cents"],
                new_price_cents=entity.price_cents,
                user_id=user_id,
            )
