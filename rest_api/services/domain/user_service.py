"""
User Service.

Handles staff accounts:
- Provisioning (user, role and permission rows in one transaction)
- Role and permission changes, announced on the auth-state stream
- Password authentication and first-run admin setup

Usage:
    from rest_api.services.domain import UserService

    service = UserService(db)
    user = service.create_user(body, actor_id, actor_email)
    service.update_user(user_id, body, actor_id, actor_email)
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from rest_api.models import User, UserPermission, UserRole
from rest_api.services.audit import log_change, log_create, log_delete
from rest_api.services.permissions import AuthEvent, AuthStateEvent, auth_notifier
from shared.config.constants import AuditAction, Permissions, ROLE_DEFAULT_PERMISSIONS, Roles
from shared.config.logging import audit_auth_event, get_logger, mask_email
from shared.infrastructure.db import safe_commit
from shared.security.password import hash_password, needs_rehash, verify_password
from shared.utils.admin_schemas import UserCreate, UserOutput, UserUpdate
from shared.utils.exceptions import (
    ConflictError,
    DatabaseError,
    DuplicateEntityError,
    NotFoundError,
    ValidationError,
)
from shared.utils.schemas import SetupRequest

logger = get_logger(__name__)

# Excluded from audit snapshots
AUDIT_EXCLUDE = ["password"]


def to_user_output(user: User) -> UserOutput:
    return UserOutput(
        id=user.id,
        email=user.email,
        nome=user.nome,
        role=user.role.role if user.role else None,
        permissions=sorted(p.permission for p in user.permissions),
        is_active=user.is_active,
        created_at=user.created_at,
    )


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _resolve_permissions(role: str, permissions: list[str] | None) -> set[str]:
    """Explicit list, or the role template when none is given."""
    if permissions is None:
        return set(ROLE_DEFAULT_PERMISSIONS.get(role, frozenset()))

    unknown = sorted(set(permissions) - set(Permissions.ALL))
    if unknown:
        raise ValidationError(f"Permissões desconhecidas: {', '.join(unknown)}", field="permissions")
    return set(permissions)


class UserService:
    """
    Business rules:
    - Email is unique (case-insensitive)
    - Exactly one role per user
    - The last active admin cannot be demoted or deleted
    - Users cannot delete themselves
    """

    def __init__(self, db: Session):
        self._db = db
        self._entity_name = "Usuário"

    # =========================================================================
    # Query Methods
    # =========================================================================

    def _query(self):
        return select(User).options(selectinload(User.role), selectinload(User.permissions))

    def get_entity(self, user_id: int, *, include_inactive: bool = False) -> User:
        query = self._query().where(User.id == user_id)
        if not include_inactive:
            query = query.where(User.is_active.is_(True))
        user = self._db.scalar(query)
        if user is None:
            raise NotFoundError(self._entity_name, user_id)
        return user

    def get_user(self, user_id: int) -> UserOutput:
        return to_user_output(self.get_entity(user_id))

    def list_users(
        self,
        *,
        include_inactive: bool = False,
        limit: int = 100,
        offset: int = 0,
    ) -> list[UserOutput]:
        query = self._query()
        if not include_inactive:
            query = query.where(User.is_active.is_(True))
        users = self._db.scalars(query.order_by(User.email).limit(limit).offset(offset)).all()
        return [to_user_output(u) for u in users]

    def find_by_email(self, email: str) -> User | None:
        return self._db.scalar(self._query().where(User.email == _normalize_email(email)))

    def count_admins(self) -> int:
        return self._db.scalar(
            select(func.count())
            .select_from(UserRole)
            .join(User, User.id == UserRole.user_id)
            .where(UserRole.role == Roles.ADMIN, User.is_active.is_(True))
        ) or 0

    # =========================================================================
    # Write Methods
    # =========================================================================

    def create_user(
        self,
        body: UserCreate,
        actor_id: int | None,
        actor_email: str | None,
    ) -> UserOutput:
        """
        Create a user with its role and permission rows.

        Raises:
            DuplicateEntityError: Email already registered.
            ValidationError: Unknown permission.
            DatabaseError: If the write fails; nothing is persisted.
        """
        email = _normalize_email(body.email)
        if self._db.scalar(select(User.id).where(User.email == email)) is not None:
            raise DuplicateEntityError(self._entity_name, email)

        permissions = _resolve_permissions(body.role, body.permissions)

        user = User(email=email, password=hash_password(body.password), nome=body.nome.strip())
        user.set_created_by(actor_id, actor_email)
        user.role = UserRole(role=body.role)
        user.permissions = [UserPermission(permission=p) for p in sorted(permissions)]
        self._db.add(user)

        try:
            self._db.flush()
            log_create(self._db, actor_id, actor_email, user, exclude=AUDIT_EXCLUDE)
            safe_commit(self._db)
        except SQLAlchemyError as e:
            logger.error("Failed to create user", email=mask_email(email), error=str(e))
            raise DatabaseError("criar usuário")

        logger.info("User created", user_id=user.id, role=body.role, actor_id=actor_id)
        return to_user_output(self.get_entity(user.id))

    def update_user(
        self,
        user_id: int,
        body: UserUpdate,
        actor_id: int | None,
        actor_email: str | None,
    ) -> UserOutput:
        """
        Update name, password, role or permissions.

        Role or permission changes take effect on the user's next request
        and are pushed to their open sessions.
        """
        user = self.get_entity(user_id)
        old_role = user.role.role if user.role else None
        old_permissions = {p.permission for p in user.permissions}
        changes: dict[str, dict] = {}

        if body.nome is not None and body.nome.strip() != user.nome:
            changes["nome"] = {"old": user.nome, "new": body.nome.strip()}
            user.nome = body.nome.strip()

        if body.password:
            user.password = hash_password(body.password)
            changes["password"] = {"old": "***", "new": "***"}

        new_role = body.role or old_role
        if new_role != old_role:
            if old_role == Roles.ADMIN and self.count_admins() <= 1:
                raise ValidationError("Não é possível remover o último administrador", user_id=user_id)
            if user.role is None:
                user.role = UserRole(role=new_role)
            else:
                user.role.role = new_role
            changes["role"] = {"old": old_role, "new": new_role}

        if body.permissions is not None or new_role != old_role:
            new_permissions = _resolve_permissions(new_role, body.permissions)
            if new_permissions != old_permissions:
                # Keep surviving rows; uq_user_permission rejects a re-insert before the delete
                user.permissions = [p for p in user.permissions if p.permission in new_permissions] + [
                    UserPermission(permission=p) for p in sorted(new_permissions - old_permissions)
                ]
                changes["permissions"] = {"old": sorted(old_permissions), "new": sorted(new_permissions)}

        if not changes:
            return to_user_output(user)

        user.set_updated_by(actor_id, actor_email)
        try:
            log_change(
                self._db,
                user_id=actor_id,
                user_email=actor_email,
                table_name=User.__tablename__,
                record_id=user_id,
                action=AuditAction.UPDATE,
                changes=changes,
            )
            safe_commit(self._db)
        except SQLAlchemyError as e:
            logger.error("Failed to update user", user_id=user_id, error=str(e))
            raise DatabaseError("atualizar usuário")

        if "role" in changes or "permissions" in changes:
            audit_auth_event("GRANTS_CHANGED", user_id=user_id, actor_id=actor_id, role=new_role)
            auth_notifier.emit(AuthStateEvent(AuthEvent.GRANTS_CHANGED, user_id))

        logger.info("User updated", user_id=user_id, fields=sorted(changes), actor_id=actor_id)
        return to_user_output(self.get_entity(user_id))

    def delete_user(
        self,
        user_id: int,
        actor_id: int | None,
        actor_email: str | None,
    ) -> None:
        """
        Soft delete. A deleted user loses every grant immediately.

        Raises:
            ValidationError: Deleting oneself or the last admin.
        """
        if user_id == actor_id:
            raise ValidationError("Você não pode excluir o próprio usuário", user_id=user_id)

        user = self.get_entity(user_id)
        if user.role is not None and user.role.role == Roles.ADMIN and self.count_admins() <= 1:
            raise ValidationError("Não é possível remover o último administrador", user_id=user_id)

        try:
            log_delete(self._db, actor_id, actor_email, user)
            user.soft_delete(actor_id, actor_email)
            safe_commit(self._db)
        except SQLAlchemyError as e:
            logger.error("Failed to delete user", user_id=user_id, error=str(e))
            raise DatabaseError("excluir usuário")

        auth_notifier.emit(AuthStateEvent(AuthEvent.GRANTS_CHANGED, user_id))
        logger.info("User deleted", user_id=user_id, actor_id=actor_id)

    # =========================================================================
    # Authentication
    # =========================================================================

    def authenticate(self, email: str, password: str) -> User | None:
        """Return the active user for these credentials, or None."""
        user = self.find_by_email(email)
        if user is None or not user.is_active:
            return None
        if not verify_password(password, user.password):
            return None

        if needs_rehash(user.password):
            user.password = hash_password(password)
            try:
                safe_commit(self._db)
            except SQLAlchemyError as e:
                # Login still succeeds with the old hash
                logger.warning("Password rehash failed", user_id=user.id, error=str(e))
        return user

    def needs_setup(self) -> bool:
        return self.count_admins() == 0

    def create_first_admin(self, body: SetupRequest) -> UserOutput:
        """
        Create the initial admin. Only allowed while no admin exists.

        Raises:
            ConflictError: Setup already done.
        """
        if not self.needs_setup():
            raise ConflictError("A configuração inicial já foi concluída")

        output = self.create_user(
            UserCreate(
                email=body.email,
                password=body.password,
                nome=body.nome,
                role=Roles.ADMIN,
            ),
            actor_id=None,
            actor_email=None,
        )
        audit_auth_event("SETUP_ADMIN_CREATED", user_id=output.id, email=output.email)
        return output
