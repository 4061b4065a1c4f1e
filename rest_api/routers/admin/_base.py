"""
Shared dependencies and helpers for admin routers.

Every admin route depends on require_permission(...); grants come from the
database on each request, so a role change applies to the next call.
"""

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from shared.config.constants import Permissions
from shared.infrastructure.db import get_db
from shared.security.auth import current_user_context as current_user
from rest_api.routers._common.pagination import Pagination, get_pagination
from rest_api.services.permissions import AuthorizationSession, require_permission


def get_user_id(user: dict[str, Any]) -> int:
    return user["user_id"]


def get_user_email(user: dict[str, Any]) -> str | None:
    return user.get("email")


__all__ = [
    "APIRouter",
    "AuthorizationSession",
    "Depends",
    "Pagination",
    "Permissions",
    "Session",
    "current_user",
    "get_db",
    "get_pagination",
    "get_user_email",
    "get_user_id",
    "require_permission",
    "status",
]
