"""
Permission dependencies for FastAPI routes.

Grants are loaded from the database on every request; the token only
identifies the user.
"""

from typing import Any, Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context as current_user
from .context import AuthorizationSession, loader_for_db


def get_authorization(
    db: Session = Depends(get_db),
    user: dict[str, Any] = Depends(current_user),
) -> AuthorizationSession:
    """
    Authorization session of the authenticated caller, loaded for this request.

    Usage:
        @router.get("/me")
        def me(authz: AuthorizationSession = Depends(get_authorization)):
            ...
    """
    authz = AuthorizationSession(loader_for_db(db))
    authz.load_permissions(user["user_id"])
    return authz


def require_permission(permission: str) -> Callable[..., AuthorizationSession]:
    """
    Dependency factory gating a route on a permission (admin always passes).

    Usage:
        @router.post("/categories")
        def create_category(
            body: CategoryIn,
            authz: AuthorizationSession = Depends(require_permission(Permissions.MANAGE_CATEGORIES)),
        ):
            ...
    """

    def dependency(
        authz: AuthorizationSession = Depends(get_authorization),
    ) -> AuthorizationSession:
        authz.require_permission(permission)
        return authz

    return dependency
