"""
Tenant Endpoints

The collection (/tenants) sits outside tenant resolution: listing shows
the caller's tenants and creating one is public sign-up. Everything under
/tenants/{tenant_id} is resolved and guarded like any tenant route.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, File, UploadFile, status
from sqlalchemy.orm import Session
from datetime import datetime, timedelta

from taskbrick.config import get_settings
from taskbrick.database import get_db
from taskbrick.models.user import User, UserRole, TenantMembership
from taskbrick.models.tenant import Tenant
from taskbrick.models.invitation import Invitation
from taskbrick.schemas.tenant import (
    TenantAddUser,
    TenantCreate,
    TenantReplace,
    TenantResponse,
    TenantUpdate,
)
from taskbrick.schemas.auth import MessageResponse
from taskbrick.api.deps import get_current_user, get_token_user, require_admin, verify_path_tenant
from taskbrick.core.exceptions import (
    ConflictError,
    InvalidInputError,
    TenantNotFoundError,
    UserNotFoundError,
)
from taskbrick.core.security import get_password_hash, verify_password
from taskbrick.services import mailer
from taskbrick.services.storage import save_upload
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/tenants", tags=["tenants"])


def _load_tenant(db: Session, tenant_id: str) -> Tenant:
    # Reload in the request session; the middleware's copy is detached
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise TenantNotFoundError(tenant_id)
    return tenant


def _ensure_domain_free(db: Session, domain: str, exclude_id: str = None) -> None:
    query = db.query(Tenant).filter(Tenant.domain == domain)
    if exclude_id:
        query = query.filter(Tenant.id != exclude_id)
    if query.first():
        raise ConflictError("A tenant with this domain already exists")


@router.get("", response_model=list[TenantResponse])
async def list_my_tenants(
    current_user: User = Depends(get_token_user),
    db: Session = Depends(get_db)
):
    """Tenants the current user is a member of."""
    return db.query(Tenant).filter(
        Tenant.id.in_(current_user.tenant_ids)
    ).order_by(Tenant.name).all()


@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    body: TenantCreate,
    db: Session = Depends(get_db)
):
    """
    Create a tenant together with its first admin.

    If the admin email already has an account, that account joins the new
    tenant, provided the password matches it. Either way the creator is
    Admin of the new tenant, whatever their role elsewhere.
    """
    _ensure_domain_free(db, body.domain)

    tenant = Tenant(name=body.name, domain=body.domain, admin_email=body.admin_email.lower())
    db.add(tenant)

    admin = db.query(User).filter(User.email == body.admin_email.lower()).first()
    if admin:
        if not verify_password(body.admin_password, admin.hashed_password):
            raise ConflictError("A user with this email is already registered")
    else:
        admin = User(
            email=body.admin_email.lower(),
            first_name=body.admin_first_name,
            last_name=body.admin_last_name,
            hashed_password=get_password_hash(body.admin_password),
            is_active=True,
        )
        db.add(admin)

    db.flush()
    db.add(TenantMembership(user=admin, tenant_id=tenant.id, role=UserRole.ADMIN))
    db.commit()

    logger.info(f"Tenant created: {tenant.id} ({tenant.domain}) with admin {admin.id}")
    return tenant


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(
    tenant_id: str = Depends(verify_path_tenant),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return _load_tenant(db, tenant_id)


@router.put("/{tenant_id}", response_model=TenantResponse)
async def replace_tenant(
    body: TenantReplace,
    tenant_id: str = Depends(verify_path_tenant),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    tenant = _load_tenant(db, tenant_id)
    _ensure_domain_free(db, body.domain, exclude_id=tenant.id)

    tenant.name = body.name
    tenant.domain = body.domain
    db.commit()

    logger.info(f"Tenant updated: {tenant.id} by {current_user.id}")
    return tenant


@router.patch("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(
    body: TenantUpdate,
    tenant_id: str = Depends(verify_path_tenant),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    tenant = _load_tenant(db, tenant_id)
    update_data = body.model_dump(exclude_unset=True)
    if not update_data:
        raise InvalidInputError("No fields to update")
    if update_data.get("domain"):
        _ensure_domain_free(db, update_data["domain"], exclude_id=tenant.id)
    if update_data.get("admin_email"):
        update_data["admin_email"] = update_data["admin_email"].lower()

    for field, value in update_data.items():
        if value is not None:
            setattr(tenant, field, value)
    db.commit()

    logger.info(f"Tenant patched: {tenant.id} fields={sorted(update_data)} by {current_user.id}")
    return tenant


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant(
    tenant_id: str = Depends(verify_path_tenant),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Delete a tenant and, through ON DELETE CASCADE, everything scoped to it.

    User accounts survive; only their membership in this tenant goes away.
    """
    tenant = _load_tenant(db, tenant_id)
    db.delete(tenant)
    db.commit()

    logger.warning(f"Tenant deleted: {tenant_id} by {current_user.id}")
    return None


@router.post("/{tenant_id}/logo", response_model=TenantResponse)
async def upload_logo(
    logo: UploadFile = File(...),
    tenant_id: str = Depends(verify_path_tenant),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    tenant = _load_tenant(db, tenant_id)
    tenant.logo_url = await save_upload(logo, tenant.id, "logos")
    db.commit()

    logger.info(f"Tenant logo updated: {tenant.id}")
    return tenant


@router.post("/{tenant_id}/add-user", response_model=MessageResponse)
async def add_existing_user(
    body: TenantAddUser,
    background_tasks: BackgroundTasks,
    tenant_id: str = Depends(verify_path_tenant),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Ask an already registered user to join this tenant.

    SECURITY: the account is not enrolled directly. The user gets an
    invitation and joins only by accepting it through /register.
    """
    user = db.query(User).filter(User.email == body.email.lower()).first()
    if not user:
        raise UserNotFoundError(body.email)
    if user.belongs_to(tenant_id):
        raise InvalidInputError("User is already a member of this tenant")

    tenant = _load_tenant(db, tenant_id)
    invitation = Invitation(
        tenant_id=tenant_id,
        email=user.email,
        role=body.role,
        expires_at=datetime.utcnow() + timedelta(hours=settings.INVITATION_EXPIRE_HOURS),
        invited_by=current_user.id,
    )
    db.add(invitation)
    db.commit()

    background_tasks.add_task(
        mailer.send_invitation_email, invitation.email, tenant.name, invitation.token, tenant_id
    )
    logger.info(f"Existing user {user.id} invited to tenant {tenant_id} by {current_user.id}")
    return MessageResponse(message="Invitation sent to existing user")
