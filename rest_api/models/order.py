"""
Order Models: Order, OrderItem, OrderItemComplement, OrderStatusHistory.

Orders are immutable after creation except for `status`, which only moves
through OrderService.transition and is mirrored by an append-only history.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, BigIntPK, utcnow

if TYPE_CHECKING:
    from .customer import Customer


def new_order_id() -> str:
    return str(uuid.uuid4())


class Order(Base):
    """
    Customer order. The random UUID id doubles as the tracking capability.
    """

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_order_id)
    customer_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("customer.id", ondelete="SET NULL"), index=True
    )
    status: Mapped[str] = mapped_column(Text, nullable=False, default="pendente", index=True)
    tipo_entrega: Mapped[str] = mapped_column(Text, nullable=False, default="entrega")
    delivery_zone_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("delivery_zone.id", ondelete="SET NULL")
    )
    delivery_address: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    delivery_fee_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )

    customer: Mapped[Optional["Customer"]] = relationship(back_populates="orders")
    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id"
    )
    history: Mapped[list["OrderStatusHistory"]] = relationship(
        back_populates="order",
        order_by="(OrderStatusHistory.changed_at, OrderStatusHistory.id)",
    )

    __table_args__ = (
        CheckConstraint("total_cents = subtotal_cents + delivery_fee_cents", name="ck_orders_total"),
        Index("ix_orders_status_created", "status", "created_at"),
    )

    @property
    def short_ref(self) -> str:
        """First 8 characters of the id, as shown to customers and staff."""
        return self.id[:8]


class OrderItem(Base):
    """Line item with name and unit price snapshots taken at checkout."""

    __tablename__ = "order_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Survives menu item deletion
    menu_item_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("menu_item.id", ondelete="SET NULL")
    )
    menu_item_name: Mapped[str] = mapped_column(Text, nullable=False)
    # Base price plus selected complement prices
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    order: Mapped["Order"] = relationship(back_populates="items")
    complements: Mapped[list["OrderItemComplement"]] = relationship(
        back_populates="order_item", cascade="all, delete-orphan", order_by="OrderItemComplement.id"
    )

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_item_quantity"),
        CheckConstraint("unit_price_cents >= 0", name="ck_order_item_price"),
    )

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


class OrderItemComplement(Base):
    __tablename__ = "order_item_complement"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("order_item.id", ondelete="CASCADE"), nullable=False, index=True
    )
    group_name: Mapped[str] = mapped_column(Text, nullable=False)
    option_name: Mapped[str] = mapped_column(Text, nullable=False)
    additional_price_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    order_item: Mapped["OrderItem"] = relationship(back_populates="complements")


class OrderStatusHistory(Base):
    """
    Append-only status trail. Rows are never updated or deleted;
    changed_at is strictly increasing per order.
    """

    __tablename__ = "order_status_history"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(Text, nullable=False)
    changed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    changed_by: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("app_user.id", ondelete="SET NULL")
    )
    notes: Mapped[Optional[str]] = mapped_column(Text)

    order: Mapped["Order"] = relationship(back_populates="history")

    __table_args__ = (
        Index("ix_order_history_order_changed", "order_id", "changed_at"),
    )
