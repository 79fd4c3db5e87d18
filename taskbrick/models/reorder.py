"""
Reorder Request Model

A restock ask for a Supply. Status moves through
PENDING -> APPROVED -> ORDERED -> PARTIAL/RECEIVED, or to CANCELED;
the transition rules live in taskbrick.services.inventory.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import relationship
from datetime import datetime
from taskbrick.database import Base
import uuid
import enum


class ReorderStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    ORDERED = "ORDERED"
    PARTIAL = "PARTIAL"
    RECEIVED = "RECEIVED"
    CANCELED = "CANCELED"


class ReorderRequest(Base):
    __tablename__ = "reorder_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    supply_id = Column(String(36), ForeignKey("supplies.id", ondelete="CASCADE"), nullable=False, index=True)

    requested_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    quantity_requested = Column(Integer, nullable=False)
    quantity_received = Column(Integer, nullable=False, default=0)
    discrepancy_reason = Column(Text, nullable=True)

    # Stored as the plain string value so filters and JSON stay readable
    status = Column(String(20), nullable=False, default=ReorderStatus.PENDING.value, index=True)
    is_closed = Column(Boolean, default=False, nullable=False)

    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    supply = relationship("Supply")

    __table_args__ = (
        Index('idx_reorder_tenant_status', 'tenant_id', 'status'),
    )

    def __repr__(self):
        return f"<ReorderRequest {self.status} supply={self.supply_id}>"
