"""
Store configuration: RestaurantConfig singleton and DeliveryZone.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import AuditMixin, Base, BigIntPK

RESTAURANT_CONFIG_ID = 1


class RestaurantConfig(Base):
    """
    Single configuration row (id = 1). Writes are full upserts, last write wins.
    """

    __tablename__ = "restaurant_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=RESTAURANT_CONFIG_ID)
    nome_restaurante: Mapped[str] = mapped_column(Text, nullable=False)
    endereco: Mapped[str] = mapped_column(Text, nullable=False, default="")
    cidade: Mapped[Optional[str]] = mapped_column(Text)
    estado: Mapped[Optional[str]] = mapped_column(Text)
    telefone: Mapped[Optional[str]] = mapped_column(Text)
    whatsapp_oficial: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status_funcionamento: Mapped[str] = mapped_column(Text, nullable=False, default="aberto")
    modo_atendimento: Mapped[str] = mapped_column(Text, nullable=False, default="ambos")
    tempo_entrega: Mapped[Optional[str]] = mapped_column(Text)

    # Branding and social
    cor_primaria: Mapped[Optional[str]] = mapped_column(Text)
    cor_secundaria: Mapped[Optional[str]] = mapped_column(Text)
    logo_url: Mapped[Optional[str]] = mapped_column(Text)
    instagram: Mapped[Optional[str]] = mapped_column(Text)
    facebook: Mapped[Optional[str]] = mapped_column(Text)

    # Order rules, all in cents
    valor_pedido_minimo_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    valor_frete_gratis_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    taxa_entrega_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    aceitar_loja_fechada: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    habilitar_whatsapp: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        CheckConstraint("id = 1", name="ck_restaurant_config_singleton"),
        CheckConstraint(
            "status_funcionamento IN ('aberto', 'fechado')", name="ck_restaurant_config_status"
        ),
        CheckConstraint(
            "modo_atendimento IN ('entrega', 'retirada', 'ambos')", name="ck_restaurant_config_modo"
        ),
    )


class DeliveryZone(AuditMixin, Base):
    """Neighbourhood/city with its own delivery fee and minimum order."""

    __tablename__ = "delivery_zone"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    nome: Mapped[str] = mapped_column(Text, nullable=False)
    cidade: Mapped[Optional[str]] = mapped_column(Text)
    estado: Mapped[Optional[str]] = mapped_column(Text)
    taxa_entrega_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pedido_minimo_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ativo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    ordem: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
