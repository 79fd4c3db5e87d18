"""
User Schemas

Request/response models for user operations.
Responses never include password hashes or reset tokens.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from taskbrick.models.user import UserRole


class UserBase(BaseModel):
    """Base user schema with common fields."""
    email: EmailStr
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class UserCreate(UserBase):
    """Schema for creating a user inside a tenant (admin only)."""
    password: str = Field(..., min_length=6, max_length=100)
    role: UserRole = UserRole.USER


class UserUpdate(BaseModel):
    """
    Schema for updating a user. All fields optional.

    email, password and is_active belong to the account, not the tenant.
    """
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=6, max_length=100)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserReplace(UserBase):
    """Full replacement (PUT). Password and role stay optional."""
    password: Optional[str] = Field(None, min_length=6, max_length=100)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserResponse(UserBase):
    """
    User response schema (excludes sensitive data).

    role is the user's role in the tenant the response is about.
    """
    id: str
    role: Optional[UserRole] = None
    is_active: bool
    is_verified: bool
    tenant_ids: list[str] = []
    created_at: datetime
    last_login_at: Optional[datetime] = None

    class Config:
        from_attributes = True  # Allows creating from ORM models


class UserSummary(BaseModel):
    """Compact user reference embedded in other responses."""
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    """Paginated list of users."""
    users: list[UserResponse]
    total: int
    page: int
    page_size: int
