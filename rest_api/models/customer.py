"""
Customer Model.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Date, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, BigIntPK

if TYPE_CHECKING:
    from .order import Order


class Customer(AuditMixin, Base):
    """
    Storefront customer, identified by WhatsApp number.

    `whatsapp` keeps the number as typed; `whatsapp_digits` is the
    normalized natural key used for lookup-or-create at checkout.
    """

    __tablename__ = "customer"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    nome: Mapped[str] = mapped_column(Text, nullable=False)
    whatsapp: Mapped[str] = mapped_column(Text, nullable=False)
    whatsapp_digits: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    endereco: Mapped[Optional[str]] = mapped_column(Text)
    data_nascimento: Mapped[Optional[date]] = mapped_column(Date)

    orders: Mapped[list["Order"]] = relationship(back_populates="customer")
