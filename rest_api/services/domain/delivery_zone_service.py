"""
Delivery Zone Service.

Zones carry their own delivery fee and minimum order; checkout uses the
zone's values when the customer picks one.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rest_api.models import DeliveryZone
from rest_api.services.base_service import BaseCRUDService
from shared.utils.admin_schemas import DeliveryZoneOutput
from shared.utils.exceptions import DuplicateEntityError


class DeliveryZoneService(BaseCRUDService[DeliveryZone, DeliveryZoneOutput]):
    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=DeliveryZone,
            output_schema=DeliveryZoneOutput,
            entity_name="Região de entrega",
        )

    def list_ordered(self, *, include_inactive: bool = False) -> list[DeliveryZoneOutput]:
        return self.list_all(
            include_inactive=include_inactive,
            order_by=[DeliveryZone.ordem, DeliveryZone.nome],
        )

    def list_available(self) -> list[DeliveryZone]:
        """Zones offered at checkout."""
        return self._repo.find_all(
            filters=[DeliveryZone.ativo.is_(True)],
            order_by=[DeliveryZone.ordem, DeliveryZone.nome],
        )

    def _check_unique_name(self, nome: str, exclude_id: int | None = None) -> None:
        query = select(DeliveryZone.id).where(
            func.lower(DeliveryZone.nome) == nome.strip().lower(),
            DeliveryZone.is_active.is_(True),
        )
        if exclude_id is not None:
            query = query.where(DeliveryZone.id != exclude_id)
        if self._db.scalar(query) is not None:
            raise DuplicateEntityError("Região de entrega", nome)

    def _validate_create(self, data: dict[str, Any]) -> None:
        self._check_unique_name(data["nome"])

    def _validate_update(self, entity: DeliveryZone, data: dict[str, Any]) -> None:
        for key in ("nome", "taxa_entrega_cents", "pedido_minimo_cents", "ativo", "ordem"):
            if key in data and data[key] is None:
                data.pop(key)
        if "nome" in data:
            self._check_unique_name(data["nome"], exclude_id=entity.id)
