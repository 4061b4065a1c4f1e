"""
Services module for business logic.

- domain/: Application services (business logic) - USE THESE
- crud/: Repository pattern
- permissions/: Authorization sessions and route gating
- audit.py: Audit trail rows written with each admin change

Usage:
    from rest_api.services.domain import OrderService
    service = OrderService(db)
    board = service.board()
"""

from .base_service import (
    BaseService,
    BaseCRUDService,
)
from .audit import (
    log_change,
    log_create,
    log_update,
    log_delete,
    serialize_model,
)

__all__ = [
    # Base service classes
    "BaseService",
    "BaseCRUDService",
    # Audit
    "log_change",
    "log_create",
    "log_update",
    "log_delete",
    "serialize_model",
]
