"""
Invitation-based registration.

Admins and project managers invite an email address to their tenant.
The invitee validates the token and registers; an invitee that already
has an account simply joins the tenant.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from datetime import datetime, timedelta

from taskbrick.database import get_db
from taskbrick.models.user import User, TenantMembership
from taskbrick.models.tenant import Tenant
from taskbrick.models.invitation import Invitation
from taskbrick.schemas.registration import (
    InvitationCreate,
    InvitationDetails,
    InvitationSent,
    RegisterRequest,
    RegisterResponse,
    ValidateInvitationRequest,
)
from taskbrick.schemas.user import UserSummary
from taskbrick.api.deps import get_current_tenant, require_project_manager
from taskbrick.core.exceptions import InvalidInputError
from taskbrick.core.security import get_password_hash
from taskbrick.services import mailer
from taskbrick.config import get_settings
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(tags=["registration"])


def _valid_invitation(db: Session, token: str) -> Invitation:
    invitation = db.query(Invitation).filter(
        Invitation.token == token,
        Invitation.used == False,  # noqa: E712
        Invitation.expires_at >= datetime.utcnow()
    ).first()
    if not invitation:
        raise InvalidInputError("Invalid or expired invitation token.")
    return invitation


@router.post("/tenants/{tenant_id}/invite", response_model=InvitationSent, status_code=status.HTTP_201_CREATED)
async def invite_user(
    tenant_id: str,
    body: InvitationCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(require_project_manager),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    invitation = Invitation(
        tenant_id=tenant.id,
        email=body.email.lower(),
        role=body.role,
        expires_at=datetime.utcnow() + timedelta(hours=settings.INVITATION_EXPIRE_HOURS),
        invited_by=current_user.id,
    )
    db.add(invitation)
    db.commit()

    background_tasks.add_task(
        mailer.send_invitation_email, invitation.email, tenant.name, invitation.token, tenant.id
    )
    logger.info(f"Invitation created: {invitation.id} for tenant {tenant.id} by {current_user.id}")

    return InvitationSent(
        message="Invitation sent successfully.",
        invitation_id=invitation.id,
        expires_at=invitation.expires_at,
    )


@router.post("/validate-invitation", response_model=InvitationDetails)
async def validate_invitation(
    body: ValidateInvitationRequest,
    db: Session = Depends(get_db)
):
    invitation = _valid_invitation(db, body.token)
    existing = db.query(User).filter(User.email == invitation.email).first()
    tenant = db.query(Tenant).filter(Tenant.id == invitation.tenant_id).first()

    return InvitationDetails(
        email=invitation.email,
        tenant_id=invitation.tenant_id,
        tenant_name=tenant.name if tenant else None,
        role=invitation.role,
        is_existing_user=existing is not None,
        message="Invitation token is valid.",
        user=UserSummary.model_validate(existing) if existing else None,
    )


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """
    Complete an invitation.

    - Existing user, already a member: 200, nothing changes
    - Existing user, not a member: membership added with the invitation's role, 200
    - New user: account created with the invitation's role, 201

    The invitation is consumed in every successful case, in the same
    transaction as the membership/user change.
    """
    invitation = _valid_invitation(db, body.token)
    tenant = db.query(Tenant).filter(Tenant.id == invitation.tenant_id).first()
    if not tenant or not tenant.is_active:
        raise InvalidInputError("Invalid or expired invitation token.")

    user = db.query(User).filter(User.email == invitation.email).first()

    if user:
        if user.belongs_to(tenant.id):
            message = "You are already a member of this tenant."
        else:
            # The invitation decides the role here, not the user's role elsewhere
            db.add(TenantMembership(user=user, tenant_id=tenant.id, role=invitation.role))
            message = "You have been successfully added to the new tenant."
        invitation.used = True
        db.commit()

        logger.info(f"Invitation {invitation.id} accepted by existing user {user.id}")
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=RegisterResponse(message=message, user=UserSummary.model_validate(user)).model_dump(),
        )

    missing = [f for f in ("first_name", "last_name", "password") if not getattr(body, f)]
    if missing:
        raise InvalidInputError(f"Missing required fields: {', '.join(missing)}")

    user = User(
        email=invitation.email,
        first_name=body.first_name,
        last_name=body.last_name,
        hashed_password=get_password_hash(body.password),
        is_active=True,
        is_verified=True,  # Invitation link proves ownership of the address
    )
    db.add(user)
    db.add(TenantMembership(user=user, tenant_id=tenant.id, role=invitation.role))
    invitation.used = True
    db.commit()

    background_tasks.add_task(mailer.send_registration_confirmation, user.email, user.first_name, tenant.name)
    logger.info(f"New user registered: {user.id} in tenant {tenant.id}")

    return RegisterResponse(message="Registration successful.", user=UserSummary.model_validate(user))
