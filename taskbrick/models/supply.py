"""
Inventory Models

A Supply is a stocked item (cleaning products, consumables) with a
reorder threshold; UsageLog records every withdrawal.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Float, Index, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
from taskbrick.database import Base
import uuid


class Supply(Base):
    __tablename__ = "supplies"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    unit_of_measure = Column(String(50), nullable=False)
    threshold = Column(Integer, nullable=False, default=0)

    vendor_name = Column(String(255), nullable=True)
    vendor_contact = Column(String(255), nullable=True)
    unit_cost = Column(Float, nullable=True)
    total_cost = Column(Float, nullable=True)

    expiration_date = Column(DateTime, nullable=True)
    location = Column(String(255), nullable=True, index=True)
    auto_reorder = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    usage_logs = relationship(
        "UsageLog",
        back_populates="supply",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="UsageLog.date",
    )

    __table_args__ = (
        UniqueConstraint('tenant_id', 'name', name='uq_supply_tenant_name'),
        Index('idx_supply_tenant_location', 'tenant_id', 'location'),
    )

    def __repr__(self):
        return f"<Supply {self.name} qty={self.quantity} (tenant={self.tenant_id})>"

    @property
    def is_below_threshold(self) -> bool:
        return self.quantity <= self.threshold

    def recalculate_total_cost(self):
        if self.unit_cost is None:
            self.total_cost = None
        else:
            self.total_cost = round(self.quantity * self.unit_cost, 2)


class UsageLog(Base):
    __tablename__ = "usage_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    supply_id = Column(String(36), ForeignKey("supplies.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime, default=datetime.utcnow, nullable=False)
    quantity_used = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    supply = relationship("Supply", back_populates="usage_logs")
