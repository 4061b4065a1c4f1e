"""
Audit log endpoints.
"""

from typing import Optional

from sqlalchemy import select

from rest_api.routers.admin._base import (
    APIRouter, AuthorizationSession, Depends, Pagination, Permissions, Session,
    get_db, get_pagination, require_permission,
)
from rest_api.models import AuditLog
from shared.utils.admin_schemas import AuditLogOutput


router = APIRouter(tags=["admin-audit"])


@router.get("/audit-log", response_model=list[AuditLogOutput])
def get_audit_log(
    table_name: Optional[str] = None,
    record_id: Optional[str] = None,
    action: Optional[str] = None,
    user_id: Optional[int] = None,
    pagination: Pagination = Depends(get_pagination),
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(require_permission(Permissions.MANAGE_USERS)),
) -> list[AuditLogOutput]:
    """
    Audit entries, newest first.

    Filters:
    - table_name: e.g. "menu_items", "restaurant_config"
    - record_id: primary key of the changed row
    - action: CREATE, UPDATE, DELETE
    - user_id: who made the change
    """
    query = select(AuditLog)
    if table_name:
        query = query.where(AuditLog.table_name == table_name)
    if record_id:
        query = query.where(AuditLog.record_id == record_id)
    if action:
        query = query.where(AuditLog.action == action.upper())
    if user_id:
        query = query.where(AuditLog.user_id == user_id)

    entries = db.scalars(
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset(pagination.offset)
        .limit(pagination.limit)
    ).all()
    return [AuditLogOutput.model_validate(entry) for entry in entries]
