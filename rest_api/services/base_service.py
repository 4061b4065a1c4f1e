"""
Base Service Classes.

Architecture:
    Router (thin) → Service (business logic) → Repository (data access) → Model

Usage:
    from rest_api.services.base_service import BaseCRUDService

    class CategoryService(BaseCRUDService[Category, CategoryOutput]):
        def __init__(self, db: Session):
            super().__init__(
                db=db,
                model=Category,
                output_schema=CategoryOutput,
                entity_name="Categoria",
            )

        def list_visible(self) -> list[CategoryOutput]:
            entities = self.repo.find_all(
                filters=[Category.ativo.is_(True)],
                order_by=Category.ordem,
            )
            return [self.to_output(e) for e in entities]
"""

from __future__ import annotations

from abc import ABC
from typing import Any, Generic, TypeVar, Type

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rest_api.models import Base
from rest_api.services.audit import log_create, log_delete, log_update
from rest_api.services.crud.repository import BaseRepository
from shared.infrastructure.db import safe_commit
from shared.config.logging import get_logger
from shared.utils.exceptions import NotFoundError, DatabaseError, ValidationError
from shared.utils.validators import validate_image_url

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=Base)
OutputT = TypeVar("OutputT", bound=BaseModel)


class BaseService(ABC, Generic[ModelT]):
    """
    Abstract base service for domain operations.

    Subclasses implement specific business logic while this class
    provides common infrastructure (repository access, logging).
    """

    def __init__(self, db: Session, model: Type[ModelT]):
        self._db = db
        self._model = model
        self._repo = BaseRepository(model, db)

    @property
    def db(self) -> Session:
        return self._db

    @property
    def repo(self) -> BaseRepository[ModelT]:
        return self._repo


class BaseCRUDService(BaseService[ModelT], Generic[ModelT, OutputT]):
    """
    Base service for admin-managed entities with CRUD operations.

    Responsibilities:
    - Data access via Repository
    - DTO transformation via output schema
    - Audit trail for mutations, committed with the change
    - Validation and lifecycle hooks for subclasses
    """

    def __init__(
        self,
        db: Session,
        model: Type[ModelT],
        output_schema: Type[OutputT],
        entity_name: str,
        *,
        supports_soft_delete: bool = True,
        image_url_fields: set[str] | None = None,
    ):
        super().__init__(db, model)
        self._output_schema = output_schema
        self._entity_name = entity_name
        self._supports_soft_delete = supports_soft_delete
        self._image_url_fields = image_url_fields or {"image_url"}

    @property
    def entity_name(self) -> str:
        """Human-readable entity name for messages."""
        return self._entity_name

    # =========================================================================
    # Read Operations
    # =========================================================================

    def get_by_id(
        self,
        entity_id: int,
        *,
        options: list[Any] | None = None,
        include_inactive: bool = False,
    ) -> OutputT:
        """
        Get entity by ID.

        Raises:
            NotFoundError: If entity not found.
        """
        return self.to_output(
            self.get_entity_or_404(entity_id, options=options, include_inactive=include_inactive)
        )

    def get_entity_or_404(
        self,
        entity_id: int,
        *,
        options: list[Any] | None = None,
        include_inactive: bool = False,
    ) -> ModelT:
        entity = self._repo.find_by_id(entity_id, options=options, include_inactive=include_inactive)
        if entity is None:
            raise NotFoundError(self._entity_name, entity_id)
        return entity

    def list_all(
        self,
        *,
        filters: list[Any] | None = None,
        options: list[Any] | None = None,
        include_inactive: bool = False,
        limit: int | None = None,
        offset: int | None = None,
        order_by: Any | None = None,
    ) -> list[OutputT]:
        entities = self._repo.find_all(
            filters=filters or (),
            options=options,
            include_inactive=include_inactive,
            limit=limit,
            offset=offset,
            order_by=order_by,
        )
        return [self.to_output(e) for e in entities]

    def count(self, *, include_inactive: bool = False) -> int:
        return self._repo.count(include_inactive=include_inactive)

    # =========================================================================
    # Write Operations
    # =========================================================================

    def create(
        self,
        data: dict[str, Any],
        user_id: int | None,
        user_email: str | None,
    ) -> OutputT:
        """
        Create new entity.

        Raises:
            ValidationError: If data is invalid.
            DatabaseError: If creation fails.
        """
        self._validate_create(data)
        data = self._validate_image_urls(data)

        entity = self._model(**self._column_values(data))
        if hasattr(entity, "set_created_by"):
            entity.set_created_by(user_id, user_email)
        self._db.add(entity)

        try:
            self._db.flush()
            self._before_commit_create(entity, data)
            log_create(self._db, user_id, user_email, entity)
            safe_commit(self._db)
            self._db.refresh(entity)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create {self._entity_name}", error=str(e))
            raise DatabaseError(f"criar {self._entity_name.lower()}")

        self._after_create(entity, user_id, user_email)
        return self.to_output(entity)

    def update(
        self,
        entity_id: int,
        data: dict[str, Any],
        user_id: int | None,
        user_email: str | None,
    ) -> OutputT:
        """
        Update existing entity with the given fields.

        Raises:
            NotFoundError: If entity not found.
            ValidationError: If data is invalid.
            DatabaseError: If update fails.
        """
        entity = self.get_entity_or_404(entity_id)

        self._validate_update(entity, data)
        data = self._validate_image_urls(data)

        column_data = self._column_values(data)
        old_values = {k: getattr(entity, k) for k in column_data}

        for field_name, value in column_data.items():
            setattr(entity, field_name, value)
        if hasattr(entity, "set_updated_by"):
            entity.set_updated_by(user_id, user_email)

        try:
            self._before_commit_update(entity, data)
            log_update(self._db, user_id, user_email, entity, old_values)
            safe_commit(self._db)
            self._db.refresh(entity)
        except SQLAlchemyError as e:
            logger.error(f"Failed to update {self._entity_name}", error=str(e), entity_id=entity_id)
            raise DatabaseError(f"atualizar {self._entity_name.lower()}")

        self._after_update(entity, old_values, user_id, user_email)
        return self.to_output(entity)

    def delete(
        self,
        entity_id: int,
        user_id: int | None,
        user_email: str | None,
    ) -> None:
        """
        Delete entity (soft delete if supported).

        Raises:
            NotFoundError: If entity not found.
        """
        entity = self.get_entity_or_404(entity_id)
        self._validate_delete(entity)

        try:
            log_delete(self._db, user_id, user_email, entity)
            if self._supports_soft_delete:
                entity.soft_delete(user_id, user_email)
            else:
                self._db.delete(entity)
            safe_commit(self._db)
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete {self._entity_name}", error=str(e), entity_id=entity_id)
            raise DatabaseError(f"excluir {self._entity_name.lower()}")

        self._after_delete(entity_id, user_id, user_email)

    # =========================================================================
    # Transformation
    # =========================================================================

    def to_output(self, entity: ModelT) -> OutputT:
        """
        Convert entity to output DTO.

        Override this method for custom transformation logic.
        """
        return self._output_schema.model_validate(entity)

    # =========================================================================
    # Validation Hooks (override in subclasses)
    # =========================================================================

    def _validate_create(self, data: dict[str, Any]) -> None:
        pass

    def _validate_update(self, entity: ModelT, data: dict[str, Any]) -> None:
        pass

    def _validate_delete(self, entity: ModelT) -> None:
        pass

    # =========================================================================
    # Lifecycle Hooks (override in subclasses)
    # =========================================================================

    def _before_commit_create(self, entity: ModelT, data: dict[str, Any]) -> None:
        """Runs inside the create transaction, after flush (entity.id is set)."""
        pass

    def _before_commit_update(self, entity: ModelT, data: dict[str, Any]) -> None:
        """Runs inside the update transaction."""
        pass

    def _after_create(self, entity: ModelT, user_id: int | None, user_email: str | None) -> None:
        pass

    def _after_update(
        self,
        entity: ModelT,
        old_values: dict[str, Any],
        user_id: int | None,
        user_email: str | None,
    ) -> None:
        pass

    def _after_delete(self, entity_id: int, user_id: int | None, user_email: str | None) -> None:
        pass

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _column_values(self, data: dict[str, Any]) -> dict[str, Any]:
        """Keep only keys that are mapped columns of the model."""
        columns = self._model.__table__.columns.keys()
        return {k: v for k, v in data.items() if k in columns and k != "id"}

    def _validate_image_urls(self, data: dict[str, Any]) -> dict[str, Any]:
        """Validate and sanitize image URL fields."""
        for field_name in self._image_url_fields:
            if field_name in data and data[field_name]:
                try:
                    data[field_name] = validate_image_url(data[field_name])
                except ValueError as e:
                    raise ValidationError(str(e), field=field_name)
        return data
