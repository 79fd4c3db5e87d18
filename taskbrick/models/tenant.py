"""
Tenant Model

The tenant is the primary isolation boundary. Each tenant is a customer
organization; almost every other row carries a tenant_id.

ARCHITECTURAL DECISION: Shared database, shared schema with a tenant_id
filter on every query. Users are the exception: one identity can belong
to several tenants through TenantMembership.
"""
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from taskbrick.database import Base
import uuid


class Tenant(Base):
    __tablename__ = "tenants"

    # UUIDs avoid enumeration attacks on tenant ids
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(String(255), nullable=False)
    domain = Column(String(255), unique=True, nullable=False, index=True)
    logo_url = Column(String(512), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)

    # Subscription tier - affects rate limits
    subscription_tier = Column(
        String(20),
        default="free",
        nullable=False
    )  # free, basic, premium, enterprise

    # NULL = use the global defaults from settings
    rate_limit_per_minute = Column(Integer, nullable=True)
    rate_limit_burst = Column(Integer, nullable=True)

    admin_email = Column(String(255), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    memberships = relationship(
        "TenantMembership",
        back_populates="tenant",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index('idx_tenant_active_domain', 'is_active', 'domain'),
    )

    def __repr__(self):
        return f"<Tenant {self.domain}>"

    @property
    def is_premium(self):
        return self.subscription_tier in ['premium', 'enterprise']
