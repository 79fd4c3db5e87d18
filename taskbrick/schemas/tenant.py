"""
Tenant Schemas
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from taskbrick.models.user import UserRole


DOMAIN_PATTERN = r"^[a-z0-9]([a-z0-9.-]*[a-z0-9])?$"


class TenantCreate(BaseModel):
    """Public sign-up: creates the tenant and its first admin."""
    name: str = Field(..., min_length=1, max_length=255)
    domain: str = Field(..., min_length=1, max_length=255, pattern=DOMAIN_PATTERN)
    admin_email: EmailStr
    admin_password: str = Field(..., min_length=6, max_length=100)
    admin_first_name: Optional[str] = Field(None, max_length=100)
    admin_last_name: Optional[str] = Field(None, max_length=100)


class TenantReplace(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    domain: str = Field(..., min_length=1, max_length=255, pattern=DOMAIN_PATTERN)


class TenantUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    domain: Optional[str] = Field(None, min_length=1, max_length=255, pattern=DOMAIN_PATTERN)
    admin_email: Optional[EmailStr] = None
    is_active: Optional[bool] = None
    subscription_tier: Optional[str] = Field(None, pattern="^(free|basic|premium|enterprise)$")


class TenantResponse(BaseModel):
    id: str
    name: str
    domain: str
    logo_url: Optional[str] = None
    admin_email: str
    is_active: bool
    subscription_tier: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TenantAddUser(BaseModel):
    """Invite an already registered account; it joins with `role` once accepted."""
    email: EmailStr
    role: UserRole = UserRole.USER
