"""
Event Log Model

Append-only audit trail per tenant.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, JSON
from datetime import datetime
from taskbrick.database import Base
import uuid


class EventLog(Base):
    __tablename__ = "event_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    event_type = Column(String(100), nullable=False)
    entity_id = Column(String(36), nullable=False)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_event_log_tenant_type', 'tenant_id', 'event_type', 'created_at'),
        Index('idx_event_log_entity', 'tenant_id', 'entity_id'),
    )
