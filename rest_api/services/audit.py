"""
Audit logging service.
Records changes to admin-managed entities for accountability.
"""

import json
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.orm import Session

from shared.config.constants import AuditAction
from rest_api.models import AuditLog


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def serialize_model(obj: Any, exclude: Optional[list[str]] = None) -> dict:
    """
    Serialize a SQLAlchemy model's columns to a JSON-friendly dict.

    Args:
        obj: SQLAlchemy model instance
        exclude: Column names to leave out (e.g. password hashes)
    """
    exclude = exclude or []
    return {
        column.name: _jsonable(getattr(obj, column.name))
        for column in obj.__table__.columns
        if column.name not in exclude
    }


def diff_values(old_values: dict, new_values: dict) -> dict:
    """Fields whose value changed, as {field: {"old": ..., "new": ...}}."""
    changes = {}
    for key in set(old_values) | set(new_values):
        old_val = _jsonable(old_values.get(key))
        new_val = _jsonable(new_values.get(key))
        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}
    return changes


def log_change(
    db: Session,
    *,
    user_id: Optional[int],
    user_email: Optional[str],
    table_name: str,
    record_id: Any,
    action: str,
    changes: Optional[dict] = None,
) -> AuditLog:
    """
    Add an audit row to the session.

    Does not commit; the row lands in the caller's transaction so the audit
    trail and the change succeed or fail together.
    """
    entry = AuditLog(
        user_id=user_id,
        user_email=user_email,
        table_name=table_name,
        record_id=str(record_id),
        action=action,
        changes=json.dumps(changes, default=str) if changes else None,
    )
    db.add(entry)
    return entry


def log_create(db: Session, user_id: Optional[int], user_email: Optional[str], entity: Any,
               exclude: Optional[list[str]] = None) -> AuditLog:
    """Log entity creation with its initial column values."""
    return log_change(
        db,
        user_id=user_id,
        user_email=user_email,
        table_name=entity.__tablename__,
        record_id=entity.id,
        action=AuditAction.CREATE,
        changes=serialize_model(entity, exclude),
    )


def log_update(db: Session, user_id: Optional[int], user_email: Optional[str], entity: Any,
               old_values: dict) -> Optional[AuditLog]:
    """Log the fields that changed. Returns None when nothing did."""
    new_values = {k: getattr(entity, k) for k in old_values}
    changes = diff_values(old_values, new_values)
    if not changes:
        return None
    return log_change(
        db,
        user_id=user_id,
        user_email=user_email,
        table_name=entity.__tablename__,
        record_id=entity.id,
        action=AuditAction.UPDATE,
        changes=changes,
    )


def log_delete(db: Session, user_id: Optional[int], user_email: Optional[str], entity: Any) -> AuditLog:
    return log_change(
        db,
        user_id=user_id,
        user_email=user_email,
        table_name=entity.__tablename__,
        record_id=entity.id,
        action=AuditAction.DELETE,
    )
