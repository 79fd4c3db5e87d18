"""
Authentication Schemas

Request/response models for authentication endpoints.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from taskbrick.schemas.user import UserResponse


class MessageResponse(BaseModel):
    message: str


class LoginRequest(BaseModel):
    """Login request body."""
    email: EmailStr
    password: str = Field(..., min_length=1)

    # Required only for users that belong to more than one tenant
    tenant_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "email": "user@example.com",
                "password": "securepassword123",
                "tenant_id": "5f0c6d3e-2a59-4a9c-9f61-0d1f0c1a7b22"
            }
        }


class TokenPair(BaseModel):
    """Access + refresh token response."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(TokenPair):
    message: str = "Login successful"
    user: UserResponse


class RefreshRequest(BaseModel):
    # Optional at the schema level so missing values get the documented
    # 401/400 responses instead of a validation error
    refresh_token: Optional[str] = None
    tenant_id: Optional[str] = None


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


class VerifyEmailRequest(BaseModel):
    email: EmailStr
    password: str


class TenantChoice(BaseModel):
    id: str
    name: str
    domain: str

    class Config:
        from_attributes = True


class VerifyEmailResponse(BaseModel):
    message: str
    tenant_id: Optional[str] = None
    tenants: Optional[list[TenantChoice]] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=6, max_length=100)


class AuthStatus(BaseModel):
    is_authenticated: bool
    user: Optional[UserResponse] = None
