"""
Repository Pattern for database access.

Provides a thin abstraction between business logic and data access.
Soft-deleted rows (is_active = False) are hidden unless asked for.

Usage:
    from rest_api.services.crud.repository import BaseRepository

    item_repo = BaseRepository(MenuItem, db)

    items = item_repo.find_all(order_by=MenuItem.ordem)
    item = item_repo.find_by_id(42)
    exists = item_repo.exists(42)

    # With eager loading
    item_repo.find_all(options=[selectinload(MenuItem.complement_links)])
"""

from __future__ import annotations

from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import select, func, exists as sql_exists
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from rest_api.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Repository providing common database operations for one model."""

    def __init__(self, model: type[ModelT], session: Session):
        self._model = model
        self._session = session

    @property
    def model(self) -> type[ModelT]:
        return self._model

    @property
    def session(self) -> Session:
        return self._session

    def _base_query(self) -> Select:
        return select(self._model)

    def _apply_active_filter(self, query: Select, include_inactive: bool) -> Select:
        """Apply is_active filter if model has it."""
        if hasattr(self._model, "is_active") and not include_inactive:
            query = query.where(self._model.is_active.is_(True))
        return query

    def _apply_options(self, query: Select, options: list[Any] | None) -> Select:
        if options:
            query = query.options(*options)
        return query

    def find_by_id(
        self,
        entity_id: Any,
        *,
        options: list[Any] | None = None,
        include_inactive: bool = False,
    ) -> ModelT | None:
        """
        Find entity by primary key.

        Args:
            entity_id: The primary key value.
            options: SQLAlchemy loader options (selectinload, joinedload).
            include_inactive: Include soft-deleted entities.

        Returns:
            Entity or None if not found.
        """
        query = self._base_query().where(self._model.id == entity_id)
        query = self._apply_active_filter(query, include_inactive)
        query = self._apply_options(query, options)
        return self._session.scalar(query)

    def find_all(
        self,
        *,
        filters: Sequence[Any] = (),
        options: list[Any] | None = None,
        include_inactive: bool = False,
        limit: int | None = None,
        offset: int | None = None,
        order_by: Any | Sequence[Any] | None = None,
    ) -> Sequence[ModelT]:
        """
        Find all entities matching the optional filter expressions.

        Args:
            filters: Extra WHERE clauses.
            options: SQLAlchemy loader options.
            include_inactive: Include soft-deleted entities.
            limit: Maximum number of results.
            offset: Number of results to skip.
            order_by: Column/expression, or a sequence of them.

        Returns:
            Sequence of entities.
        """
        query = self._base_query()
        if filters:
            query = query.where(*filters)
        query = self._apply_active_filter(query, include_inactive)
        query = self._apply_options(query, options)

        if order_by is not None:
            if isinstance(order_by, (list, tuple)):
                query = query.order_by(*order_by)
            else:
                query = query.order_by(order_by)
        if offset is not None:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        return self._session.scalars(query).all()

    def count(self, *, filters: Sequence[Any] = (), include_inactive: bool = False) -> int:
        query = select(func.count()).select_from(self._model)
        if filters:
            query = query.where(*filters)
        if hasattr(self._model, "is_active") and not include_inactive:
            query = query.where(self._model.is_active.is_(True))
        return self._session.scalar(query) or 0

    def exists(self, entity_id: Any) -> bool:
        query = select(sql_exists().where(self._model.id == entity_id))
        return self._session.scalar(query) or False

    def add(self, entity: ModelT) -> ModelT:
        """Add entity to session (not committed)."""
        self._session.add(entity)
        return entity

    def delete(self, entity: ModelT) -> None:
        """Delete entity from session (not committed)."""
        self._session.delete(entity)

    def refresh(self, entity: ModelT) -> ModelT:
        self._session.refresh(entity)
        return entity
