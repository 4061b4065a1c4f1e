"""
User and Authorization Models.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import AuditMixin, Base, BigIntPK


class User(AuditMixin, Base):
    """
    Staff account (admin, gerente, atendente, cozinha).
    Inherits: is_active, created_at, updated_at, deleted_at, *_by_id/email from AuditMixin.
    """

    __tablename__ = "app_user"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True, index=True)
    password: Mapped[str] = mapped_column(Text, nullable=False)  # bcrypt hash
    nome: Mapped[Optional[str]] = mapped_column(Text)

    role: Mapped[Optional["UserRole"]] = relationship(
        back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    permissions: Mapped[list["UserPermission"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


class UserRole(Base):
    """Single role per user, enforced by the unique user_id."""

    __tablename__ = "user_role"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    role: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped["User"] = relationship(back_populates="role")

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'gerente', 'atendente', 'cozinha')", name="ck_user_role_role"
        ),
    )


class UserPermission(Base):
    __tablename__ = "user_permission"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    permission: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped["User"] = relationship(back_populates="permissions")

    __table_args__ = (
        UniqueConstraint("user_id", "permission", name="uq_user_permission"),
    )
