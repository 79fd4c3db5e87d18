"""
API Dependencies

Reusable FastAPI dependencies for authentication and authorization, plus
"find-or-404" loaders. Every loader filters on tenant_id, so an id that
belongs to another tenant is reported exactly like a missing one.

PATTERN: FastAPI's dependency injection system is powerful and clean.
Dependencies can be composed and reused easily.
"""
from typing import Optional, Type
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from taskbrick.database import Base, get_db
from taskbrick.models.user import User, UserRole, TenantMembership
from taskbrick.models.tenant import Tenant
from taskbrick.models.project import Project
from taskbrick.models.task import Task
from taskbrick.models.team import Team
from taskbrick.models.sprint import Sprint
from taskbrick.models.supply import Supply
from taskbrick.core.security import decode_access_token
from taskbrick.core.exceptions import (
    AuthenticationError,
    NotFoundError,
    PermissionDenied,
    ProjectNotFoundError,
    SprintNotFoundError,
    SupplyNotFoundError,
    TaskNotFoundError,
    TeamNotFoundError,
    TenantIsolationError,
    UserNotFoundError,
)
from taskbrick.utils.logging import get_logger, log_security_event

logger = get_logger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def get_current_tenant(request: Request) -> Tenant:
    """
    Get current tenant from request state.

    This is set by TenantMiddleware and should always be present
    for tenant-scoped routes.

    CRITICAL: This is a key part of tenant isolation.
    """
    tenant = getattr(request.state, "tenant", None)
    if not tenant:
        logger.error("No tenant in request state - middleware may have failed")
        raise TenantIsolationError("Tenant context not available")
    return tenant


def verify_path_tenant(tenant_id: str, request: Request) -> str:
    """
    Router-level dependency for /tenants/{tenant_id}/... routes.

    The middleware resolves the tenant from the same path segment; this
    declares the parameter and asserts both agree.
    """
    tenant = get_current_tenant(request)
    if tenant.id != tenant_id:
        raise TenantIsolationError("Tenant path mismatch")
    return tenant_id


def _decode_bearer(credentials: Optional[HTTPAuthorizationCredentials]) -> dict:
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise AuthenticationError("Invalid or expired token")
    if not payload.get("sub"):
        raise AuthenticationError("Invalid token payload")
    return payload


def _load_active_user(db: Session, user_id: str) -> User:
    # PERFORMANCE NOTE: This is a DB query on every authenticated request
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"Token for unknown user: {user_id}")
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise AuthenticationError("User account is inactive")
    return user


def get_token_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Authenticated user for routes outside a tenant (e.g. /auth/me, GET /tenants).

    Validates the token and the account but does not bind the request to
    a tenant; the role reported is the one held in the token's tenant.
    """
    payload = _decode_bearer(credentials)
    return _load_active_user(db, payload["sub"]).bind_tenant(payload.get("tenant_id"))


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant)
) -> User:
    """
    Get current authenticated user.

    This dependency:
    1. Validates JWT token
    2. Verifies the token's tenant is the request tenant (CRITICAL)
    3. Loads user from database and checks it is active
    4. Verifies the user is still a member of the tenant
    5. Binds the user's role in this tenant (roles are per membership)

    SECURITY: Multiple layers of validation prevent token reuse
    across tenants and ensure proper isolation. The role claim in the
    token is informational only; permissions use the stored membership.
    """
    payload = _decode_bearer(credentials)
    user_id = payload["sub"]
    token_tenant_id = payload.get("tenant_id")

    # CRITICAL SECURITY CHECK: Verify token's tenant matches request tenant
    # This prevents a valid token from one tenant being used for another
    if token_tenant_id != tenant.id:
        log_security_event(
            "tenant_isolation_violation",
            {"user_id": user_id, "token_tenant": token_tenant_id, "tenant_id": tenant.id,
             "path": request.url.path},
            logger
        )
        raise TenantIsolationError("Token tenant mismatch")

    user = _load_active_user(db, user_id)

    # Membership may have been revoked after the token was issued
    if not user.belongs_to(tenant.id):
        log_security_event(
            "tenant_isolation_violation",
            {"user_id": user_id, "tenant_id": tenant.id, "reason": "not_a_member"},
            logger
        )
        raise TenantIsolationError("User is not a member of this tenant")

    return user.bind_tenant(tenant.id)


def require_admin(
    current_user: User = Depends(get_current_user)
) -> User:
    """Use this dependency for admin-only endpoints."""
    if current_user.role != UserRole.ADMIN:
        raise PermissionDenied("Admin privileges required")
    return current_user


def require_project_manager(
    current_user: User = Depends(get_current_user)
) -> User:
    """ProjectManager or Admin."""
    if not current_user.has_permission(UserRole.PROJECT_MANAGER):
        raise PermissionDenied("Project manager or admin privileges required")
    return current_user


def require_developer(
    current_user: User = Depends(get_current_user)
) -> User:
    """Developer role or higher."""
    if not current_user.has_permission(UserRole.DEVELOPER):
        raise PermissionDenied("Developer privileges required")
    return current_user


# Optional authentication dependency
# Use this when endpoint supports both authenticated and anonymous access
def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """
    Get current user if authenticated, None otherwise.

    Any token problem yields None instead of an error.
    """
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        return None

    user = db.query(User).filter(User.id == payload["sub"]).first()
    if not user or not user.is_active:
        return None
    return user.bind_tenant(payload.get("tenant_id"))


# ============================================================================
# FIND-OR-404 LOADERS
# ============================================================================

def get_or_404(
    db: Session,
    model: Type[Base],
    object_id: Optional[str],
    tenant_id: str,
    error: Type[NotFoundError] = NotFoundError,
):
    """Load a tenant-scoped row by id or raise the given NotFoundError."""
    if not object_id:
        raise error()
    obj = db.query(model).filter(
        model.id == object_id,
        model.tenant_id == tenant_id  # CRITICAL: Tenant isolation
    ).first()
    if obj is None:
        raise error(object_id)
    return obj


def get_member_or_404(db: Session, tenant_id: str, user_id: Optional[str]) -> User:
    """Load a user that is a member of the tenant, with its role there bound."""
    if not user_id:
        raise UserNotFoundError()
    user = db.query(User).join(TenantMembership).filter(
        User.id == user_id,
        TenantMembership.tenant_id == tenant_id
    ).first()
    if user is None:
        raise UserNotFoundError(user_id)
    return user.bind_tenant(tenant_id)


def get_project_or_404(db: Session, tenant_id: str, project_id: str, include_deleted: bool = False) -> Project:
    query = db.query(Project).filter(Project.id == project_id, Project.tenant_id == tenant_id)
    if not include_deleted:
        query = query.filter(Project.is_deleted == False)  # noqa: E712
    project = query.first()
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


def get_task_or_404(db: Session, tenant_id: str, task_id: str) -> Task:
    return get_or_404(db, Task, task_id, tenant_id, TaskNotFoundError)


def get_team_or_404(db: Session, tenant_id: str, team_id: str) -> Team:
    return get_or_404(db, Team, team_id, tenant_id, TeamNotFoundError)


def get_sprint_or_404(db: Session, tenant_id: str, sprint_id: str) -> Sprint:
    return get_or_404(db, Sprint, sprint_id, tenant_id, SprintNotFoundError)


def get_supply_or_404(db: Session, tenant_id: str, supply_id: str) -> Supply:
    return get_or_404(db, Supply, supply_id, tenant_id, SupplyNotFoundError)


def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Clients send "" for unset optional ids; treat it as absent."""
    if value is None:
        return None
    value = value.strip()
    return value or None
