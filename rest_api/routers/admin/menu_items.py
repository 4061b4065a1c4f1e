"""
Menu item and complement group management endpoints.
"""

from typing import Optional

from rest_api.routers.admin._base import (
    APIRouter, AuthorizationSession, Depends, Pagination, Permissions, Session, status,
    current_user, get_db, get_pagination, get_user_email, get_user_id, require_permission,
)
from shared.utils.admin_schemas import (
    ComplementGroupAdminOutput,
    ComplementGroupCreate,
    ComplementGroupUpdate,
    MenuItemCreate,
    MenuItemOutput,
    MenuItemUpdate,
)
from rest_api.services.domain import ComplementGroupService, MenuItemService


router = APIRouter(tags=["admin-menu"])

require_menu = require_permission(Permissions.MANAGE_MENU_ITEMS)


# =============================================================================
# Menu Items
# =============================================================================


@router.get("/menu-items", response_model=list[MenuItemOutput])
def list_menu_items(
    category_id: Optional[int] = None,
    search: Optional[str] = None,
    include_deleted: bool = False,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_menu),
) -> list[MenuItemOutput]:
    return MenuItemService(db).list_admin(
        category_id=category_id,
        search=search,
        include_inactive=include_deleted,
        limit=pagination.limit,
        offset=pagination.offset,
    )


@router.get("/menu-items/{item_id}", response_model=MenuItemOutput)
def get_menu_item(
    item_id: int,
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_menu),
) -> MenuItemOutput:
    return MenuItemService(db).get_by_id(item_id)


@router.post("/menu-items", response_model=MenuItemOutput, status_code=status.HTTP_201_CREATED)
def create_menu_item(
    body: MenuItemCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_menu),
) -> MenuItemOutput:
    return MenuItemService(db).create(body.model_dump(), get_user_id(user), get_user_email(user))


@router.patch("/menu-items/{item_id}", response_model=MenuItemOutput)
def update_menu_item(
    item_id: int,
    body: MenuItemUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_menu),
) -> MenuItemOutput:
    """
    Partial update. complement_group_ids, when sent, replaces the links.

    Orders already placed keep their own name and price snapshots.
    """
    return MenuItemService(db).update(
        item_id,
        body.model_dump(exclude_unset=True),
        get_user_id(user),
        get_user_email(user),
    )


@router.delete("/menu-items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_menu_item(
    item_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_menu),
) -> None:
    MenuItemService(db).delete(item_id, get_user_id(user), get_user_email(user))


# =============================================================================
# Complement Groups
# =============================================================================


@router.get("/complement-groups", response_model=list[ComplementGroupAdminOutput])
def list_complement_groups(
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_menu),
) -> list[ComplementGroupAdminOutput]:
    return ComplementGroupService(db).list_ordered()


@router.get("/complement-groups/{group_id}", response_model=ComplementGroupAdminOutput)
def get_complement_group(
    group_id: int,
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_menu),
) -> ComplementGroupAdminOutput:
    return ComplementGroupService(db).get_by_id(group_id)


@router.post(
    "/complement-groups",
    response_model=ComplementGroupAdminOutput,
    status_code=status.HTTP_201_CREATED,
)
def create_complement_group(
    body: ComplementGroupCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_menu),
) -> ComplementGroupAdminOutput:
    return ComplementGroupService(db).create(body.model_dump(), get_user_id(user), get_user_email(user))


@router.patch("/complement-groups/{group_id}", response_model=ComplementGroupAdminOutput)
def update_complement_group(
    group_id: int,
    body: ComplementGroupUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_menu),
) -> ComplementGroupAdminOutput:
    """Partial update; options, when sent, replace the whole option list."""
    return ComplementGroupService(db).update(
        group_id,
        body.model_dump(exclude_unset=True),
        get_user_id(user),
        get_user_email(user),
    )


@router.delete("/complement-groups/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_complement_group(
    group_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_menu),
) -> None:
    ComplementGroupService(db).delete(group_id, get_user_id(user), get_user_email(user))
