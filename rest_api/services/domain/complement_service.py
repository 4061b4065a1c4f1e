"""
Complement Group Service.

Groups own their options; an update that carries `options` replaces the
whole option list. Orders are unaffected because order items keep their
own complement snapshots.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session, selectinload

from rest_api.models import ComplementGroup, ComplementOption
from rest_api.services.base_service import BaseCRUDService
from shared.config.constants import ComplementMode
from shared.utils.admin_schemas import ComplementGroupAdminOutput
from shared.utils.exceptions import ValidationError


class ComplementGroupService(BaseCRUDService[ComplementGroup, ComplementGroupAdminOutput]):
    def __init__(self, db: Session):
        super().__init__(
            db=db,
            model=ComplementGroup,
            output_schema=ComplementGroupAdminOutput,
            entity_name="Grupo de complementos",
        )

    def list_ordered(self, *, include_inactive: bool = False) -> list[ComplementGroupAdminOutput]:
        return self.list_all(
            options=[selectinload(ComplementGroup.options)],
            include_inactive=include_inactive,
            order_by=[ComplementGroup.ordem, ComplementGroup.id],
        )

    def _check_options(self, data: dict[str, Any], tipo: str, obrigatorio: bool) -> None:
        options = data.get("options")
        if options is None:
            return
        names = [o["nome"].strip().lower() for o in options]
        if len(names) != len(set(names)):
            raise ValidationError("Opções com nomes repetidos", field="options")
        if obrigatorio and not options:
            raise ValidationError("Grupo obrigatório precisa de ao menos uma opção", field="options")
        if tipo not in ComplementMode.ALL:
            raise ValidationError("Tipo de grupo inválido", field="tipo")

    def _validate_create(self, data: dict[str, Any]) -> None:
        self._check_options(data, data.get("tipo", ComplementMode.SINGLE), bool(data.get("obrigatorio")))

    def _validate_update(self, entity: ComplementGroup, data: dict[str, Any]) -> None:
        for key in ("nome", "tipo", "obrigatorio", "ordem", "options"):
            if key in data and data[key] is None:
                data.pop(key)
        self._check_options(
            data,
            data.get("tipo", entity.tipo),
            data.get("obrigatorio", entity.obrigatorio),
        )

    def _replace_options(self, entity: ComplementGroup, options: list[dict[str, Any]]) -> None:
        entity.options = [
            ComplementOption(
                nome=o["nome"].strip(),
                additional_price_cents=o.get("additional_price_cents", 0),
                ordem=o["ordem"] if o.get("ordem") is not None else index,
            )
            for index, o in enumerate(options)
        ]

    def _before_commit_create(self, entity: ComplementGroup, data: dict[str, Any]) -> None:
        self._replace_options(entity, data.get("options") or [])

    def _before_commit_update(self, entity: ComplementGroup, data: dict[str, Any]) -> None:
        if "options" in data:
            self._replace_options(entity, data["options"])
