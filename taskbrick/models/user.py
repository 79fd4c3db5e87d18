"""
User Model

Users have one global identity (email is unique system-wide) and join
tenants through TenantMembership. The role lives on the membership, so
the same account can be Admin in one tenant and User in another.

IMPORTANT: Every tenant-scoped query involving users must go through the
membership table to prevent cross-tenant data leaks.
"""
from typing import Optional
from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, Index, UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship, validates
from datetime import datetime
from taskbrick.database import Base
import uuid
import enum


class UserRole(str, enum.Enum):
    """
    User roles for RBAC.

    ADMIN: Full access to tenant resources, can manage users and tenant settings
    PROJECT_MANAGER: Manages sprints, invitations and all projects
    DEVELOPER: Creates and edits projects, tasks and comments
    USER: Basic access; can work on tasks but not create projects
    """
    ADMIN = "Admin"
    PROJECT_MANAGER = "ProjectManager"
    DEVELOPER = "Developer"
    USER = "User"


ROLE_HIERARCHY = {
    UserRole.USER: 1,
    UserRole.DEVELOPER: 2,
    UserRole.PROJECT_MANAGER: 3,
    UserRole.ADMIN: 4,
}


def _capitalize(value):
    if value:
        value = value.strip()
        return value[:1].upper() + value[1:]
    return value


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    is_verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    password_reset_token = Column(String(255), nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)

    memberships = relationship(
        "TenantMembership",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # Not a column: role in the tenant the request acts in, set by bind_tenant()
    role = None

    def __repr__(self):
        return f"<User {self.email}>"

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower() if value else value

    @validates("first_name", "last_name")
    def _normalize_name(self, key, value):
        return _capitalize(value)

    @property
    def tenant_ids(self) -> list[str]:
        return [m.tenant_id for m in self.memberships]

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def belongs_to(self, tenant_id: str) -> bool:
        return tenant_id in self.tenant_ids

    def membership_for(self, tenant_id: Optional[str]) -> Optional["TenantMembership"]:
        return next((m for m in self.memberships if m.tenant_id == tenant_id), None)

    def role_in(self, tenant_id: Optional[str]) -> Optional[UserRole]:
        membership = self.membership_for(tenant_id)
        return membership.role if membership else None

    def bind_tenant(self, tenant_id: Optional[str]) -> "User":
        """Resolve `role` for the given tenant (None when not a member)."""
        self.role = self.role_in(tenant_id)
        return self

    def has_permission(self, required_role: UserRole) -> bool:
        """
        Check if user has required permission level in the bound tenant.

        Hierarchy: Admin > ProjectManager > Developer > User
        """
        if self.role is None:
            return False
        return ROLE_HIERARCHY[self.role] >= ROLE_HIERARCHY[required_role]


class TenantMembership(Base):
    """A user's membership in a tenant."""

    __tablename__ = "tenant_memberships"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(SQLEnum(UserRole), default=UserRole.USER, nullable=False, index=True)
    joined_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="memberships")
    tenant = relationship("Tenant", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint('user_id', 'tenant_id', name='uq_membership_user_tenant'),
    )


class RefreshToken(Base):
    """
    Server-side record of an issued refresh token.

    A user holds one row per active session/device. Logout deletes the row;
    refreshing replaces it with a new one (rotation).
    """

    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(512), nullable=False, unique=True)
    issued_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        Index('idx_refresh_token_user', 'user_id', 'expires_at'),
    )
