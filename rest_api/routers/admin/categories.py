"""
Category management endpoints.
"""

from rest_api.routers.admin._base import (
    APIRouter, AuthorizationSession, Depends, Permissions, Session, status,
    current_user, get_db, get_user_email, get_user_id, require_permission,
)
from shared.utils.admin_schemas import CategoryCreate, CategoryOutput, CategoryUpdate
from rest_api.services.domain import CategoryService


router = APIRouter(tags=["admin-categories"])

require_categories = require_permission(Permissions.MANAGE_CATEGORIES)


@router.get("/categories", response_model=list[CategoryOutput])
def list_categories(
    include_deleted: bool = False,
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_categories),
) -> list[CategoryOutput]:
    return CategoryService(db).list_ordered(include_inactive=include_deleted)


@router.get("/categories/{category_id}", response_model=CategoryOutput)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_categories),
) -> CategoryOutput:
    return CategoryService(db).get_by_id(category_id)


@router.post("/categories", response_model=CategoryOutput, status_code=status.HTTP_201_CREATED)
def create_category(
    body: CategoryCreate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_categories),
) -> CategoryOutput:
    """Create a category; position defaults to the end of the list."""
    return CategoryService(db).create_with_auto_order(
        body.model_dump(),
        get_user_id(user),
        get_user_email(user),
    )


@router.patch("/categories/{category_id}", response_model=CategoryOutput)
def update_category(
    category_id: int,
    body: CategoryUpdate,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_categories),
) -> CategoryOutput:
    return CategoryService(db).update(
        category_id,
        body.model_dump(exclude_unset=True),
        get_user_id(user),
        get_user_email(user),
    )


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    user: dict = Depends(current_user),
    authz: AuthorizationSession = Depends(require_categories),
) -> None:
    """Soft delete. Rejected while the category still has menu items."""
    CategoryService(db).delete(category_id, get_user_id(user), get_user_email(user))
