"""
Authorization model.

Usage:
    from rest_api.services.permissions import AuthorizationSession, require_permission

    authz = AuthorizationSession(loader_for_db(db))
    authz.load_permissions(user_id)
    authz.require_permission(Permissions.MANAGE_USERS)

    # Or as a route dependency
    @router.get("/orders")
    def list_orders(authz = Depends(require_permission(Permissions.MANAGE_ORDERS))):
        ...
"""

from .notifier import (
    AuthEvent,
    AuthStateEvent,
    AuthStateNotifier,
    auth_notifier,
)
from .context import (
    AuthorizationSession,
    DatabasePermissionLoader,
    Grants,
    NO_GRANTS,
    PermissionLoader,
    SessionState,
    load_grants,
    loader_for_db,
)
from .decorators import (
    get_authorization,
    require_permission,
)

__all__ = [
    # Auth-state stream
    "AuthEvent",
    "AuthStateEvent",
    "AuthStateNotifier",
    "auth_notifier",
    # Session
    "AuthorizationSession",
    "DatabasePermissionLoader",
    "Grants",
    "NO_GRANTS",
    "PermissionLoader",
    "SessionState",
    "load_grants",
    "loader_for_db",
    # Dependencies
    "get_authorization",
    "require_permission",
]
