"""
Profile Endpoints

One profile per user: a bio (HTML stripped) and an optional picture.
Profiles are keyed by user id in the URL.
"""
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional

from taskbrick.database import get_db
from taskbrick.models.user import User, TenantMembership
from taskbrick.models.profile import Profile
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.profile import ProfileResponse
from taskbrick.api.deps import (
    get_current_tenant,
    get_current_user,
    get_member_or_404,
    verify_path_tenant,
)
from taskbrick.core.permissions import can_modify_user
from taskbrick.core.exceptions import ConflictError, PermissionDenied, ProfileNotFoundError
from taskbrick.services.storage import save_upload
from taskbrick.utils.sanitize import strip_tags
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tenants/{tenant_id}/profiles",
    tags=["profiles"],
    dependencies=[Depends(verify_path_tenant)],
)


def _get_profile(db: Session, tenant_id: str, user_id: str) -> Profile:
    profile = db.query(Profile).filter(
        Profile.user_id == user_id,
        Profile.tenant_id == tenant_id  # CRITICAL
    ).first()
    if not profile:
        raise ProfileNotFoundError(user_id)
    return profile


def _check_owner(db: Session, tenant_id: str, current_user: User, user_id: str) -> User:
    target = get_member_or_404(db, tenant_id, user_id)
    if not can_modify_user(current_user, target):
        raise PermissionDenied("You can only manage your own profile")
    return target


@router.get("", response_model=list[ProfileResponse])
async def list_profiles(
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    # Only profiles of users that are still members
    return db.query(Profile).join(
        TenantMembership,
        (TenantMembership.user_id == Profile.user_id) & (TenantMembership.tenant_id == tenant.id)
    ).filter(Profile.tenant_id == tenant.id).all()


@router.post("/{user_id}", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    user_id: str,
    bio: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    target = _check_owner(db, tenant.id, current_user, user_id)

    if db.query(Profile).filter(Profile.user_id == target.id).first():
        raise ConflictError("Profile already exists for this user")

    profile = Profile(
        user_id=target.id,
        tenant_id=tenant.id,
        bio=strip_tags(bio) if bio else None,
    )
    if image is not None and image.filename:
        profile.profile_picture_url = await save_upload(image, tenant.id, "profiles")

    db.add(profile)
    db.commit()

    logger.info(f"Profile created for user {target.id} by {current_user.id}")
    return profile


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return _get_profile(db, tenant.id, user_id)


async def _apply(
    db: Session,
    profile: Profile,
    tenant_id: str,
    bio: Optional[str],
    image: Optional[UploadFile],
    replace: bool,
) -> Profile:
    if bio is not None or replace:
        profile.bio = strip_tags(bio) if bio else None
    if image is not None and image.filename:
        profile.profile_picture_url = await save_upload(image, tenant_id, "profiles")
    db.commit()
    return profile


@router.put("/{user_id}", response_model=ProfileResponse)
async def replace_profile(
    user_id: str,
    bio: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Replace the bio (cleared when omitted); the picture changes only if a file is sent."""
    _check_owner(db, tenant.id, current_user, user_id)
    profile = _get_profile(db, tenant.id, user_id)
    return await _apply(db, profile, tenant.id, bio, image, replace=True)


@router.patch("/{user_id}", response_model=ProfileResponse)
async def update_profile(
    user_id: str,
    bio: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    _check_owner(db, tenant.id, current_user, user_id)
    profile = _get_profile(db, tenant.id, user_id)
    return await _apply(db, profile, tenant.id, bio, image, replace=False)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_profile(
    user_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    _check_owner(db, tenant.id, current_user, user_id)
    profile = _get_profile(db, tenant.id, user_id)
    db.delete(profile)
    db.commit()

    logger.info(f"Profile deleted for user {user_id} by {current_user.id}")
    return None
