"""
Invitation Model

An admin invites an email address to join a tenant with a given role.
The token is sent by email and consumed once by registration.
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum as SQLEnum
from datetime import datetime
from taskbrick.database import Base
from taskbrick.models.user import UserRole
import uuid


class Invitation(Base):
    __tablename__ = "invitations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.USER)
    token = Column(String(64), nullable=False, unique=True, default=lambda: str(uuid.uuid4()))
    used = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    invited_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Invitation {self.email} (tenant={self.tenant_id})>"

    def is_valid(self, now=None) -> bool:
        now = now or datetime.utcnow()
        return not self.used and self.expires_at >= now
