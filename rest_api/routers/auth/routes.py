"""
Authentication router.
Handles login, logout, the current-user lookup and first-run setup.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from shared.infrastructure.db import get_db
from shared.config.logging import auth_logger as logger, audit_auth_event, mask_email
from shared.config.settings import settings
from shared.security.auth import current_user_context, sign_jwt
from shared.security.rate_limit import limiter
from shared.utils.schemas import (
    LoginRequest,
    LoginResponse,
    SetupRequest,
    SetupStatusOutput,
    UserInfo,
)
from rest_api.models import User
from rest_api.services.domain import UserService
from rest_api.services.permissions import (
    AuthEvent,
    AuthStateEvent,
    AuthorizationSession,
    auth_notifier,
    get_authorization,
    loader_for_db,
)


router = APIRouter(prefix="/api/auth", tags=["auth"])
setup_router = APIRouter(prefix="/api/setup", tags=["setup"])


class LogoutResponse(BaseModel):
    success: bool
    message: str


def _user_info(user: User, authz: AuthorizationSession) -> UserInfo:
    return UserInfo(
        id=user.id,
        email=user.email,
        nome=user.nome,
        role=authz.role,
        is_admin=authz.is_admin,
        permissions=sorted(authz.effective_permissions()),
    )


@router.post("/login", response_model=LoginResponse)
@limiter.limit(settings.login_rate_limit)
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """
    Authenticate a staff member and return an access token.

    The token only identifies the user (sub, email); roles and permissions
    are loaded from the database on every request.
    """
    user = UserService(db).authenticate(body.email, body.password)
    if user is None:
        logger.warning("LOGIN_FAILED", email=mask_email(body.email))
        audit_auth_event("LOGIN", email=body.email, success=False, reason="invalid_credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou senha inválidos",
        )

    authz = AuthorizationSession(loader_for_db(db))
    authz.load_permissions(user.id)

    access_token = sign_jwt({"sub": str(user.id), "email": user.email})

    auth_notifier.emit(AuthStateEvent(AuthEvent.SIGNED_IN, user.id))
    audit_auth_event("LOGIN", user_id=user.id, email=user.email, role=authz.role)
    logger.info("LOGIN_SUCCESS", email=mask_email(user.email), user_id=user.id, role=authz.role)

    return LoginResponse(
        access_token=access_token,
        token_type="Bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=_user_info(user, authz),
    )


@router.get("/me", response_model=UserInfo)
def me(
    db: Session = Depends(get_db),
    authz: AuthorizationSession = Depends(get_authorization),
) -> UserInfo:
    """Current user with role and effective permissions (admin expands to all)."""
    user = db.get(User, authz.user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Usuário não encontrado ou inativo",
        )
    return _user_info(user, authz)


@router.post("/logout", response_model=LogoutResponse)
def logout(ctx: dict[str, Any] = Depends(current_user_context)) -> LogoutResponse:
    """
    Sign the user out.

    Open staff sockets of this user reload their grants with no actor and
    close themselves.
    """
    auth_notifier.emit(AuthStateEvent(AuthEvent.SIGNED_OUT, ctx["user_id"]))
    audit_auth_event("LOGOUT", user_id=ctx["user_id"], email=ctx.get("email"))
    return LogoutResponse(success=True, message="Sessão encerrada")


# =============================================================================
# First-run setup
# =============================================================================


@setup_router.get("/status", response_model=SetupStatusOutput)
def setup_status(db: Session = Depends(get_db)) -> SetupStatusOutput:
    return SetupStatusOutput(needs_setup=UserService(db).needs_setup())


@setup_router.post("", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.login_rate_limit)
def setup(request: Request, body: SetupRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """
    Create the first admin and sign them in.

    Rejected with 409 once any admin exists.
    """
    service = UserService(db)
    created = service.create_first_admin(body)
    user = service.get_entity(created.id)

    authz = AuthorizationSession(loader_for_db(db))
    authz.load_permissions(user.id)

    auth_notifier.emit(AuthStateEvent(AuthEvent.SIGNED_IN, user.id))
    return LoginResponse(
        access_token=sign_jwt({"sub": str(user.id), "email": user.email}),
        token_type="Bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=_user_info(user, authz),
    )
