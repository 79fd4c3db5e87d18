"""
Comment Model

Comments on tasks. Deletion is soft so threads keep their shape.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, JSON
from datetime import datetime
from taskbrick.database import Base
import uuid


class Comment(Base):
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    body = Column(Text, nullable=False)
    attachments = Column(JSON, nullable=False, default=list)
    reactions = Column(JSON, nullable=False, default=list)

    is_deleted = Column(Boolean, default=False, nullable=False)
    deleted_at = Column(DateTime, nullable=True)
    deleted_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_comment_task', 'tenant_id', 'task_id', 'is_deleted'),
    )

    def soft_delete(self, user_id=None):
        self.is_deleted = True
        self.deleted_at = datetime.utcnow()
        self.deleted_by = user_id
