"""
Catalog Models: Category, MenuItem, ComplementGroup, ComplementOption, MenuItemComplement.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, ForeignKey, Index, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, BigIntPK


class Category(AuditMixin, Base):
    """
    Menu section shown as a filter tab on the storefront.
    Inherits: is_active, created_at, updated_at, deleted_at, *_by_id/email from AuditMixin.
    """

    __tablename__ = "category"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    nome: Mapped[str] = mapped_column(Text, nullable=False)
    ordem: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    menu_items: Mapped[list["MenuItem"]] = relationship(back_populates="category")


class MenuItem(AuditMixin, Base):
    """
    Sellable item. `ativo` controls storefront visibility; soft delete
    (is_active) removes it from the admin listing as well.
    """

    __tablename__ = "menu_item"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    nome: Mapped[str] = mapped_column(Text, nullable=False)
    descricao: Mapped[Optional[str]] = mapped_column(Text)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    # JSON array of extra image URLs
    image_urls: Mapped[Optional[str]] = mapped_column(Text)
    category_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("category.id", ondelete="SET NULL"), index=True
    )
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    destaque: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ordem: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    category: Mapped[Optional["Category"]] = relationship(back_populates="menu_items")
    complement_links: Mapped[list["MenuItemComplement"]] = relationship(
        back_populates="menu_item", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("price_cents > 0", name="ck_menu_item_price_positive"),
        Index("ix_menu_item_storefront", "is_active", "ativo"),
    )

    @property
    def complement_groups(self) -> list["ComplementGroup"]:
        groups = [link.group for link in self.complement_links if link.group.is_active is not False]
        return sorted(groups, key=lambda g: (g.ordem or 0, g.id or 0))


class ComplementGroup(AuditMixin, Base):
    """Group of add-ons offered with menu items (e.g. 'Molhos', 'Ponto da carne')."""

    __tablename__ = "complement_group"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    nome: Mapped[str] = mapped_column(Text, nullable=False)
    tipo: Mapped[str] = mapped_column(Text, nullable=False, default="single")  # single | multiple
    obrigatorio: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ordem: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    options: Mapped[list["ComplementOption"]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="(ComplementOption.ordem, ComplementOption.id)",
    )

    __table_args__ = (
        CheckConstraint("tipo IN ('single', 'multiple')", name="ck_complement_group_tipo"),
    )


class ComplementOption(Base):
    __tablename__ = "complement_option"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("complement_group.id", ondelete="CASCADE"), nullable=False, index=True
    )
    nome: Mapped[str] = mapped_column(Text, nullable=False)
    additional_price_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    ordem: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    group: Mapped["ComplementGroup"] = relationship(back_populates="options")

    __table_args__ = (
        CheckConstraint("additional_price_cents >= 0", name="ck_complement_option_price"),
    )


class MenuItemComplement(Base):
    """Join entity linking a menu item to a complement group."""

    __tablename__ = "menu_item_complement"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    menu_item_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("menu_item.id", ondelete="CASCADE"), nullable=False, index=True
    )
    complement_group_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("complement_group.id", ondelete="CASCADE"), nullable=False, index=True
    )

    menu_item: Mapped["MenuItem"] = relationship(back_populates="complement_links")
    group: Mapped["ComplementGroup"] = relationship()

    __table_args__ = (
        UniqueConstraint("menu_item_id", "complement_group_id", name="uq_menu_item_complement"),
    )
