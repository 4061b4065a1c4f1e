"""
Staff user management endpoints.

Role and permission changes are announced on the auth-state stream, so
open staff sockets re-check their grants immediately.
"""

from rest_api.routers.admin._base import (
    APIRouter, AuthorizationSession, Depends, Pagination, Permissions, Session, status,
    current_user, get_db, get_pagination, get_user_email, get_user_id, require_permission,
)
from shared.utils.admin_schemas import UserCreate, UserOutput, UserUpdate
from rest_api.services.domain import UserService


router = APIRouter(tags=["admin-users"])

require_users = require_permission(Permissions.MANAGE_USERS)


@router.get("/users", response_model=list[UserOutput])
def list_users(
    include_deleted: bool = False,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_users),
) -> list[UserOutput]:
    return UserService(db).list_users(
        include_inactive=include_deleted,
        limit=pagination.limit,
        offset=pagination.offset,
    )


@router.get("/users/{user_id}", response_model=UserOutput)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_users),
) -> UserOutput:
    return UserService(db).get_user(user_id)


@router.post("/users", response_model=UserOutput, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_users),
) -> UserOutput:
    """Create a staff user. Permissions default to the role template."""
    return UserService(db).create_user(body, get_user_id(user), get_user_email(user))


@router.patch("/users/{user_id}", response_model=UserOutput)
def update_user(
    user_id: int,
    body: UserUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_users),
) -> UserOutput:
    return UserService(db).update_user(user_id, body, get_user_id(user), get_user_email(user))


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_users),
) -> None:
    """Soft delete. The last admin and the caller's own account are protected."""
    UserService(db).delete_user(user_id, get_user_id(user), get_user_email(user))
