"""
User Management Endpoints

Users of a tenant, i.e. accounts with a membership in it.

RBAC:
- List/view users: All members
- Create user: Admin only
- Update user: Admin (anyone) or self (own profile); role changes Admin only
- Email, password, active flag: self, or Admin when the account belongs
  to this tenant only
- Remove user: Admin only, never oneself
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
from typing import Optional, Union

from taskbrick.database import get_db
from taskbrick.models.user import User, UserRole, TenantMembership
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.user import (
    UserCreate,
    UserListResponse,
    UserReplace,
    UserResponse,
    UserUpdate,
)
from taskbrick.api.deps import (
    get_current_tenant,
    get_current_user,
    get_member_or_404,
    require_admin,
    verify_path_tenant,
)
from taskbrick.core.permissions import can_manage_account, can_modify_user, is_admin
from taskbrick.core.exceptions import ConflictError, InvalidInputError, PermissionDenied
from taskbrick.core.security import get_password_hash
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tenants/{tenant_id}/users",
    tags=["users"],
    dependencies=[Depends(verify_path_tenant)],
)


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    filter: Optional[str] = Query(None, description="Substring of first name, last name or email"),
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    List users in current tenant.

    TENANT_ISOLATION: Filtered through the membership table.
    """
    query = db.query(User).join(TenantMembership).filter(TenantMembership.tenant_id == tenant.id)

    if filter:
        pattern = f"%{filter}%"
        query = query.filter(or_(
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
            User.email.ilike(pattern),
        ))
    if role:
        query = query.filter(TenantMembership.role == role)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)

    total = query.count()
    offset = (page - 1) * page_size
    users = query.order_by(User.created_at.desc()).offset(offset).limit(page_size).all()

    return UserListResponse(
        users=[u.bind_tenant(tenant.id) for u in users], total=total, page=page, page_size=page_size
    )


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_admin),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Create a new user in the current tenant.

    Email is unique system-wide; existing accounts join a tenant through
    an invitation or add-user, not here.
    """
    existing = db.query(User).filter(User.email == user_data.email.lower()).first()
    if existing:
        if existing.belongs_to(tenant.id):
            raise ConflictError("User with this email already exists in this tenant")
        raise ConflictError("Email is already registered; invite the user instead")

    new_user = User(
        email=user_data.email,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        hashed_password=get_password_hash(user_data.password),
        is_active=True,
        is_verified=False,
    )
    db.add(new_user)
    db.add(TenantMembership(user=new_user, tenant_id=tenant.id, role=user_data.role))
    db.commit()

    logger.info(f"User created: {new_user.id} by {current_user.id} in tenant {tenant.id}")
    return new_user.bind_tenant(tenant.id)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return get_member_or_404(db, tenant.id, user_id)


def _apply_user_changes(
    db: Session,
    user: User,
    changes: dict,
    current_user: User,
    tenant_id: str,
) -> None:
    new_role = changes.pop("role", None)
    if new_role is not None and new_role != user.role:
        if not is_admin(current_user):
            raise PermissionDenied("Only admins can change user roles")
        if user.id == current_user.id:
            # Prevent the last admin from locking everyone out by accident
            raise InvalidInputError("Cannot change your own role")

    email = changes.get("email")
    email_changed = bool(email) and email.lower() != user.email
    active_changed = changes.get("is_active") is not None and changes["is_active"] != user.is_active

    if active_changed and not is_admin(current_user):
        raise PermissionDenied("Only admins can activate or deactivate users")

    if (email_changed or active_changed or changes.get("password")) \
            and not can_manage_account(current_user, user, tenant_id):
        raise PermissionDenied(
            "This account also belongs to other tenants; only its owner can change "
            "email, password or active status"
        )

    if email_changed:
        taken = db.query(User).filter(User.email == email.lower(), User.id != user.id).first()
        if taken:
            raise ConflictError("Email already in use")

    password = changes.pop("password", None)
    if password:
        user.hashed_password = get_password_hash(password)

    for field, value in changes.items():
        if value is None and field in ("email", "is_active"):
            continue
        setattr(user, field, value)

    if new_role is not None:
        user.membership_for(tenant_id).role = new_role
        user.role = new_role


async def _update(
    user_id: str,
    user_data: Union[UserUpdate, UserReplace],
    partial: bool,
    current_user: User,
    tenant: Tenant,
    db: Session,
) -> User:
    user = get_member_or_404(db, tenant.id, user_id)

    if not can_modify_user(current_user, user):
        raise PermissionDenied("Not authorized to modify this user")

    changes = user_data.model_dump(exclude_unset=partial)
    _apply_user_changes(db, user, changes, current_user, tenant.id)
    db.commit()

    logger.info(f"User updated: {user.id} by {current_user.id}")
    return user


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    user_data: UserUpdate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return await _update(user_id, user_data, True, current_user, tenant, db)


@router.put("/{user_id}", response_model=UserResponse)
async def replace_user(
    user_id: str,
    user_data: UserReplace,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return await _update(user_id, user_data, False, current_user, tenant, db)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    current_user: User = Depends(require_admin),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Remove a user from the tenant.

    The account itself is deleted once it belongs to no tenant.
    """
    if user_id == current_user.id:
        raise InvalidInputError("Cannot delete your own account")

    user = get_member_or_404(db, tenant.id, user_id)

    membership = next(m for m in user.memberships if m.tenant_id == tenant.id)
    user.memberships.remove(membership)

    if not user.memberships:
        db.delete(user)
        logger.info(f"User deleted: {user_id} by {current_user.id}")
    else:
        logger.info(f"User {user_id} removed from tenant {tenant.id} by {current_user.id}")

    db.commit()
    return None
