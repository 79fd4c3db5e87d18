"""
Invitation and registration schemas.
"""
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from taskbrick.models.user import UserRole
from taskbrick.schemas.user import UserSummary


class InvitationCreate(BaseModel):
    email: EmailStr
    role: UserRole


class InvitationSent(BaseModel):
    message: str
    invitation_id: str
    expires_at: datetime


class ValidateInvitationRequest(BaseModel):
    token: str = Field(..., min_length=1)


class InvitationDetails(BaseModel):
    email: str
    tenant_id: str
    tenant_name: Optional[str] = None
    role: UserRole
    is_existing_user: bool
    message: str
    user: Optional[UserSummary] = None


class RegisterRequest(BaseModel):
    """
    Completes an invitation.

    Names and password are only used when the invited email has no
    account yet.
    """
    token: str = Field(..., min_length=1)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    password: Optional[str] = Field(None, min_length=6, max_length=100)


class RegisterResponse(BaseModel):
    message: str
    user: UserSummary
