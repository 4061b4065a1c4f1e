"""
Restaurant configuration service.

The configuration is a single row (id = 1). Reads fall back to defaults
until an admin saves it; writes are full-row upserts, last write wins.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rest_api.models import RestaurantConfig, RESTAURANT_CONFIG_ID
from rest_api.services.audit import log_change, diff_values, serialize_model
from shared.config.constants import AuditAction, StoreStatus
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import safe_commit
from shared.utils.admin_schemas import RestaurantConfigOutput, RestaurantConfigUpdate
from shared.utils.exceptions import DatabaseError, ValidationError
from shared.utils.schemas import StoreConfigPublicOutput
from shared.utils.validators import validate_image_url

logger = get_logger(__name__)


def default_config() -> RestaurantConfig:
    """Transient configuration used before the first save."""
    return RestaurantConfig(
        id=RESTAURANT_CONFIG_ID,
        nome_restaurante="Espetaria",
        endereco="",
        whatsapp_oficial="",
        status_funcionamento=StoreStatus.OPEN,
        modo_atendimento="ambos",
        valor_pedido_minimo_cents=0,
        valor_frete_gratis_cents=0,
        taxa_entrega_cents=settings.default_delivery_fee_cents,
        aceitar_loja_fechada=False,
        habilitar_whatsapp=True,
    )


def accepting_orders(config: RestaurantConfig) -> bool:
    return config.status_funcionamento == StoreStatus.OPEN or bool(config.aceitar_loja_fechada)


class ConfigService:
    def __init__(self, db: Session):
        self._db = db

    def get(self) -> RestaurantConfig:
        config = self._db.get(RestaurantConfig, RESTAURANT_CONFIG_ID)
        return config if config is not None else default_config()

    def get_public(self) -> StoreConfigPublicOutput:
        config = self.get()
        data = RestaurantConfigOutput.model_validate(config).model_dump()
        return StoreConfigPublicOutput(**data, accepting_orders=accepting_orders(config))

    def get_admin(self) -> RestaurantConfigOutput:
        return RestaurantConfigOutput.model_validate(self.get())

    def upsert(
        self,
        body: RestaurantConfigUpdate,
        user_id: int | None,
        user_email: str | None,
    ) -> RestaurantConfigOutput:
        """
        Replace the configuration row.

        Raises:
            ValidationError: Invalid logo URL.
            DatabaseError: If the write fails.
        """
        data: dict[str, Any] = body.model_dump()
        try:
            data["logo_url"] = validate_image_url(data.get("logo_url"))
        except ValueError as e:
            raise ValidationError(str(e), field="logo_url")

        config = self._db.get(RestaurantConfig, RESTAURANT_CONFIG_ID)
        if config is None:
            config = RestaurantConfig(id=RESTAURANT_CONFIG_ID, **data)
            self._db.add(config)
            action, changes = AuditAction.CREATE, data
        else:
            old_values = serialize_model(config)
            for key, value in data.items():
                setattr(config, key, value)
            action = AuditAction.UPDATE
            changes = diff_values({k: old_values.get(k) for k in data}, data)

        try:
            log_change(
                self._db,
                user_id=user_id,
                user_email=user_email,
                table_name=RestaurantConfig.__tablename__,
                record_id=RESTAURANT_CONFIG_ID,
                action=action,
                changes=changes,
            )
            safe_commit(self._db)
            self._db.refresh(config)
        except SQLAlchemyError as e:
            logger.error("Failed to save restaurant config", error=str(e))
            raise DatabaseError("salvar as configurações")

        logger.info(
            "Restaurant config saved",
            user_id=user_id,
            status=config.status_funcionamento,
            changed_fields=sorted(changes) if changes else [],
        )
        return RestaurantConfigOutput.model_validate(config)
