"""
Authorization session - main entry point for permission checks.

An AuthorizationSession answers "can the current actor do X". It holds the
actor's role and permission sets, loaded through a PermissionLoader, and
has an explicit lifecycle:

    idle --load_permissions()--> loading --> loaded
    loaded --auth state change--> loading --> loaded

Usage:
    authz = AuthorizationSession(loader_for_db(db))
    authz.load_permissions(user_id)
    if authz.has_permission(Permissions.MANAGE_ORDERS):
        ...

    # Long-lived consumers follow auth-state changes
    with AuthorizationSession(DatabasePermissionLoader(SessionLocal)) as authz:
        authz.load_permissions(user_id)
        ...
"""

from __future__ import annotations

import threading
from functools import partial
from typing import Callable, Final, NamedTuple

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from shared.config.constants import PERMISSION_LABELS, Permissions, Roles
from shared.config.logging import get_logger
from shared.utils.exceptions import ForbiddenError
from rest_api.models import User, UserPermission, UserRole
from .notifier import AuthEvent, AuthStateEvent, AuthStateNotifier, auth_notifier

logger = get_logger(__name__)


class Grants(NamedTuple):
    roles: frozenset[str]
    permissions: frozenset[str]


NO_GRANTS: Final[Grants] = Grants(frozenset(), frozenset())

PermissionLoader = Callable[[int], Grants]


class SessionState:
    IDLE: Final[str] = "idle"
    LOADING: Final[str] = "loading"
    LOADED: Final[str] = "loaded"


# =============================================================================
# Loaders
# =============================================================================


def load_grants(db: Session, user_id: int) -> Grants:
    """
    Read the role and permission rows of an active user.

    Inactive or missing users have no grants.
    """
    user = db.scalar(select(User).where(User.id == user_id, User.is_active.is_(True)))
    if user is None:
        return NO_GRANTS

    roles = db.scalars(select(UserRole.role).where(UserRole.user_id == user_id)).all()
    permissions = db.scalars(
        select(UserPermission.permission).where(UserPermission.user_id == user_id)
    ).all()
    return Grants(frozenset(roles), frozenset(permissions))


def loader_for_db(db: Session) -> PermissionLoader:
    """Loader bound to a request-scoped session."""
    return partial(load_grants, db)


class DatabasePermissionLoader:
    """
    Loader that opens a short-lived session per fetch.

    Used by sessions that reload from the auth-state stream, which may call
    in from another thread.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def __call__(self, user_id: int) -> Grants:
        with self._session_factory() as db:
            return load_grants(db, user_id)


# =============================================================================
# Session
# =============================================================================


class AuthorizationSession:
    """
    Roles and permissions of one actor, with explicit lifecycle.

    Admin is a universal override: has_permission() is True for every
    permission when the actor holds the admin role.
    """

    def __init__(
        self,
        loader: PermissionLoader,
        notifier: AuthStateNotifier | None = None,
    ):
        self._loader = loader
        self._notifier = notifier or auth_notifier
        self._lock = threading.RLock()
        self._user_id: int | None = None
        self._grants: Grants = NO_GRANTS
        self._state: str = SessionState.IDLE
        self._unsubscribe: Callable[[], None] | None = None
        self._listeners: list[Callable[["AuthorizationSession"], None]] = []

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> str:
        return self._state

    @property
    def user_id(self) -> int | None:
        return self._user_id

    @property
    def roles(self) -> frozenset[str]:
        return self._grants.roles

    @property
    def permissions(self) -> frozenset[str]:
        return self._grants.permissions

    @property
    def role(self) -> str | None:
        """The single effective role, or None."""
        return next(iter(sorted(self._grants.roles)), None)

    def load_permissions(self, user_id: int | None) -> None:
        """
        Fetch the actor's grants, replacing any previous state.

        None means no authenticated actor: empty sets, state loaded.
        A fetch failure is logged and degrades to no grants (fail closed).
        """
        with self._lock:
            self._state = SessionState.LOADING
            self._user_id = user_id

            if user_id is None:
                grants = NO_GRANTS
            else:
                try:
                    grants = self._loader(user_id)
                except Exception as e:
                    logger.error(
                        "Permission fetch failed, denying all",
                        user_id=user_id,
                        error=str(e),
                    )
                    grants = NO_GRANTS

            self._grants = Grants(frozenset(grants.roles), frozenset(grants.permissions))
            self._state = SessionState.LOADED

        for listener in list(self._listeners):
            listener(self)

    def has_role(self, role: str) -> bool:
        return role in self._grants.roles

    @property
    def is_admin(self) -> bool:
        return Roles.ADMIN in self._grants.roles

    def has_permission(self, permission: str) -> bool:
        """True if the actor is admin or holds the permission."""
        return self.is_admin or permission in self._grants.permissions

    def require_permission(self, permission: str, action: str | None = None) -> None:
        """Raise ForbiddenError unless has_permission(permission)."""
        if not self.has_permission(permission):
            raise ForbiddenError(
                action or PERMISSION_LABELS.get(permission, permission),
                permission=permission,
                user_id=self._user_id,
            )

    def effective_permissions(self) -> frozenset[str]:
        """Permissions the actor can exercise, expanding the admin override."""
        if self.is_admin:
            return frozenset(Permissions.ALL)
        return self._grants.permissions

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def on_reload(self, listener: Callable[["AuthorizationSession"], None]) -> None:
        """Call listener after every completed load (e.g. to re-check a gate)."""
        self._listeners.append(listener)

    def start(self) -> "AuthorizationSession":
        """Follow auth-state changes. Calling twice is a no-op."""
        if self._unsubscribe is None:
            self._unsubscribe = self._notifier.subscribe(self._on_auth_event)
        return self

    def close(self) -> None:
        """Stop following auth-state changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def __enter__(self) -> "AuthorizationSession":
        return self.start()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _on_auth_event(self, event: AuthStateEvent) -> None:
        if self._state == SessionState.IDLE or not event.concerns(self._user_id):
            return

        logger.debug("Reloading permissions", kind=event.kind, user_id=self._user_id)
        if event.kind == AuthEvent.SIGNED_OUT:
            self.load_permissions(None)
        else:
            self.load_permissions(self._user_id)
