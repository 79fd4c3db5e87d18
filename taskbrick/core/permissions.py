"""
Permission System (RBAC)

Role checks on top of the simple hierarchy defined on UserRole:
Admin > ProjectManager > Developer > User. Roles are per tenant, so the
user passed in must be bound to the request tenant (see User.bind_tenant).

Endpoint-level gates live in taskbrick.api.deps (require_admin etc.);
the helpers here answer ownership questions that need the target object.
"""
from typing import Optional
from taskbrick.models.user import User, UserRole


def is_admin(user: User) -> bool:
    return user.role == UserRole.ADMIN


def can_modify_user(current_user: User, target_user: User) -> bool:
    """
    Admins can modify anyone in their tenant; everyone else only themselves.
    """
    if is_admin(current_user):
        return True
    return current_user.id == target_user.id


def can_manage_account(current_user: User, target_user: User, tenant_id: str) -> bool:
    """
    Email, password and active flag are shared by every tenant of the account.

    SECURITY: an admin may change them only for accounts that belong to
    their tenant alone; otherwise one tenant's admin could take over a
    user of another tenant.
    """
    if current_user.id == target_user.id:
        return True
    return is_admin(current_user) and target_user.tenant_ids == [tenant_id]


def can_delete_project(current_user: User, creator_id: Optional[str]) -> bool:
    """
    Admins and project managers can delete any project; others only the
    projects they created.
    """
    if current_user.has_permission(UserRole.PROJECT_MANAGER):
        return True
    return creator_id is not None and current_user.id == creator_id


def can_modify_project(current_user: User, creator_id: Optional[str]) -> bool:
    """
    Developers and above edit any project (collaborative editing).
    Plain users can only edit projects they created.
    """
    if current_user.has_permission(UserRole.DEVELOPER):
        return True
    return creator_id is not None and current_user.id == creator_id


def can_modify_comment(current_user: User, author_id: Optional[str]) -> bool:
    if is_admin(current_user):
        return True
    return author_id is not None and current_user.id == author_id
