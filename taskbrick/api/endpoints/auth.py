"""
Authentication Endpoints

Login, refresh-token rotation, logout and the password-reset flow.
None of these routes are tenant-scoped by the middleware: the tenant
is chosen by the login request and then carried by the access token.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import Optional

from taskbrick.database import get_db
from taskbrick.models.user import User, RefreshToken
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.auth import (
    AuthStatus,
    ForgotPasswordRequest,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    RefreshRequest,
    ResetPasswordRequest,
    TenantChoice,
    TokenPair,
    VerifyEmailRequest,
    VerifyEmailResponse,
)
from taskbrick.schemas.user import UserResponse
from taskbrick.core.security import (
    RefreshTokenExpired,
    RefreshTokenInvalid,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    generate_reset_token,
    get_password_hash,
    verify_password,
)
from taskbrick.core.exceptions import (
    AuthenticationError,
    InvalidInputError,
    PermissionDenied,
    UserNotFoundError,
)
from taskbrick.api.deps import get_current_user_optional, get_token_user
from taskbrick.services import mailer
from taskbrick.config import get_settings
from taskbrick.utils.logging import log_security_event, get_logger

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/auth", tags=["authentication"])


def build_access_token(user: User, tenant_id: str) -> str:
    token_data = {
        "sub": user.id,
        "tenant_id": tenant_id,
        "email": user.email,
        "role": user.role_in(tenant_id).value,
        "first_name": user.first_name,
        "last_name": user.last_name,
    }
    return create_access_token(
        token_data,
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )


def issue_refresh_token(db: Session, user: User) -> str:
    """Create a refresh token and store it; the caller commits."""
    token, expires_at = create_refresh_token(user.id)
    db.add(RefreshToken(user_id=user.id, token=token, expires_at=expires_at))
    return token


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return an access/refresh token pair.

    Process:
    1. Find user by email and verify password
    2. Pick the tenant: the requested one (must be a member), or the
       user's only tenant
    3. Issue a tenant-bound access token and a stored refresh token

    SECURITY: Unknown email and wrong password give the same answer to
    prevent user enumeration.
    """
    user = db.query(User).filter(User.email == credentials.email.lower()).first()

    if not user or not verify_password(credentials.password, user.hashed_password):
        log_security_event(
            "failed_login",
            {"reason": "invalid_credentials", "email": credentials.email},
            logger
        )
        raise InvalidInputError("Invalid credentials")

    if not user.is_active:
        log_security_event("failed_login", {"reason": "user_inactive", "user_id": user.id}, logger)
        raise PermissionDenied("User account is inactive")

    tenant_id = credentials.tenant_id
    if tenant_id:
        if not user.belongs_to(tenant_id):
            log_security_event(
                "failed_login",
                {"reason": "not_a_member", "user_id": user.id, "tenant_id": tenant_id},
                logger
            )
            raise PermissionDenied("Access denied for this tenant.")
    else:
        if len(user.tenant_ids) != 1:
            raise InvalidInputError(
                "Please select a tenant." if user.tenant_ids else "User does not belong to any tenant."
            )
        tenant_id = user.tenant_ids[0]

    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant or not tenant.is_active:
        raise PermissionDenied("Tenant account is inactive")

    user.bind_tenant(tenant_id)
    access_token = build_access_token(user, tenant_id)
    refresh_token = issue_refresh_token(db, user)

    user.last_login_at = datetime.utcnow()
    db.commit()

    logger.info(f"Successful login: user={user.id}, tenant={tenant_id}")

    return LoginResponse(
        message="Login successful",
        user=UserResponse.model_validate(user),
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
    )


@router.post("/refresh-token", response_model=TokenPair)
async def refresh_token(
    body: RefreshRequest,
    db: Session = Depends(get_db)
):
    """
    Exchange a refresh token for a new access token.

    ROTATION: The presented token is deleted and a new one is returned, so
    each refresh token works exactly once. Other sessions of the same user
    keep their own tokens.
    """
    if not body.refresh_token:
        raise AuthenticationError("Refresh token required")
    if not body.tenant_id:
        raise InvalidInputError("Tenant ID is required")

    try:
        payload = decode_refresh_token(body.refresh_token)
    except RefreshTokenExpired:
        log_security_event("refresh_token_rejected", {"reason": "expired"}, logger)
        raise PermissionDenied("Refresh token expired")
    except RefreshTokenInvalid:
        log_security_event("refresh_token_rejected", {"reason": "invalid"}, logger)
        raise PermissionDenied("Refresh token invalid")

    user_id = payload["sub"]
    stored = db.query(RefreshToken).filter(
        RefreshToken.token == body.refresh_token,
        RefreshToken.user_id == user_id
    ).first()

    if not stored:
        # Reuse of a rotated token, or a token revoked by logout
        log_security_event("refresh_token_rejected", {"reason": "not_stored", "user_id": user_id}, logger)
        raise PermissionDenied("Refresh token invalid")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise PermissionDenied("Refresh token invalid")

    if not user.belongs_to(body.tenant_id):
        log_security_event(
            "tenant_isolation_violation",
            {"user_id": user_id, "tenant_id": body.tenant_id, "reason": "refresh_for_foreign_tenant"},
            logger
        )
        raise PermissionDenied("Access denied for this tenant.")

    db.delete(stored)
    new_refresh = issue_refresh_token(db, user)
    access_token = build_access_token(user, body.tenant_id)
    db.commit()

    logger.info(f"Token refreshed: user={user.id}, tenant={body.tenant_id}")

    return TokenPair(access_token=access_token, refresh_token=new_refresh)


@router.post("/verify-email", response_model=VerifyEmailResponse, response_model_exclude_none=True)
async def verify_email(
    body: VerifyEmailRequest,
    db: Session = Depends(get_db)
):
    """
    First login step: check credentials and tell the client which tenant(s)
    the user can sign into.
    """
    user = db.query(User).filter(User.email == body.email.lower()).first()
    if not user:
        raise UserNotFoundError()

    if not verify_password(body.password, user.hashed_password):
        log_security_event("failed_login", {"reason": "invalid_password", "user_id": user.id}, logger)
        raise InvalidInputError("Invalid credentials")

    tenants = db.query(Tenant).filter(Tenant.id.in_(user.tenant_ids)).order_by(Tenant.name).all()

    if len(tenants) > 1:
        return VerifyEmailResponse(
            message="Multiple tenants found. Please select a tenant.",
            tenants=[TenantChoice.model_validate(t) for t in tenants],
        )
    if len(tenants) == 1:
        return VerifyEmailResponse(message="Tenant found.", tenant_id=tenants[0].id)

    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No tenant found for this user")


@router.post("/logout", response_model=MessageResponse)
async def logout(
    body: LogoutRequest,
    db: Session = Depends(get_db)
):
    """Revoke one refresh token (this session only)."""
    if not body.refresh_token:
        raise InvalidInputError("Refresh token required")

    try:
        payload = decode_refresh_token(body.refresh_token)
    except (RefreshTokenExpired, RefreshTokenInvalid):
        raise AuthenticationError("Invalid refresh token")

    user = db.query(User).filter(User.id == payload["sub"]).first()
    if not user:
        raise UserNotFoundError()

    db.query(RefreshToken).filter(
        RefreshToken.user_id == user.id,
        RefreshToken.token == body.refresh_token
    ).delete(synchronize_session=False)
    db.commit()

    logger.info(f"User logged out: {user.id}")
    return MessageResponse(message="Logged out successfully")


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    body: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    user = db.query(User).filter(User.email == body.email.lower()).first()
    if not user:
        raise UserNotFoundError()

    user.password_reset_token = generate_reset_token()
    user.password_reset_expires = datetime.utcnow() + timedelta(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES)
    db.commit()

    background_tasks.add_task(mailer.send_password_reset_email, user.email, user.password_reset_token)
    log_security_event("password_reset", {"stage": "requested", "user_id": user.id}, logger)

    return MessageResponse(message="Password reset email sent")


def _user_for_reset_token(db: Session, token: str) -> Optional[User]:
    return db.query(User).filter(
        User.password_reset_token == token,
        User.password_reset_expires > datetime.utcnow()
    ).first()


@router.get("/reset-password/{token}", response_model=MessageResponse)
async def check_reset_token(token: str, db: Session = Depends(get_db)):
    """Lets the front end check a reset link before showing the form."""
    if not _user_for_reset_token(db, token):
        raise InvalidInputError("Password reset token is invalid or has expired")
    return MessageResponse(message="Token is valid")


@router.post("/reset-password/{token}", response_model=MessageResponse)
async def reset_password(
    token: str,
    body: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """
    Set a new password from a reset link.

    SECURITY: All refresh tokens of the user are revoked, signing out
    every other session.
    """
    user = _user_for_reset_token(db, token)
    if not user:
        raise InvalidInputError("Password reset token is invalid or has expired")

    user.hashed_password = get_password_hash(body.password)
    user.password_reset_token = None
    user.password_reset_expires = None
    db.query(RefreshToken).filter(RefreshToken.user_id == user.id).delete(synchronize_session=False)
    db.commit()

    background_tasks.add_task(mailer.send_password_changed_email, user.email)
    log_security_event("password_reset", {"stage": "completed", "user_id": user.id}, logger)

    return MessageResponse(message="Password has been reset")


@router.get("/status", response_model=AuthStatus)
async def auth_status(current_user: Optional[User] = Depends(get_current_user_optional)):
    if current_user is None:
        return AuthStatus(is_authenticated=False)
    return AuthStatus(is_authenticated=True, user=UserResponse.model_validate(current_user))


@router.get("/me", response_model=UserResponse)
async def read_me(current_user: User = Depends(get_token_user)):
    return current_user
