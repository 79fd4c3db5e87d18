"""
Project Model

Projects are tenant-scoped and group tasks, sprints and boards.
"""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Index, JSON
from datetime import datetime
from taskbrick.database import Base
import uuid


PROJECT_STATUSES = ("Active", "Completed", "OnHold")


class Project(Base):
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # CRITICAL: Tenant foreign key for isolation
    tenant_id = Column(
        String(36),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    # NOTE: Creator must be a member of the tenant (enforced at application level)
    creator_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), default="Active", nullable=False, index=True)
    objectives = Column(Text, nullable=True)
    deadline = Column(DateTime, nullable=True)

    # Progress notes: [{"content": str, "date": iso-datetime}]
    updates = Column(JSON, nullable=False, default=list)

    # Soft delete - users expect "undelete"
    is_deleted = Column(Boolean, default=False, nullable=False, index=True)
    deleted_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_project_tenant_status', 'tenant_id', 'is_deleted', 'status'),
        Index('idx_project_creator', 'creator_id', 'is_deleted'),
    )

    def __repr__(self):
        return f"<Project {self.name} (tenant={self.tenant_id})>"

    def soft_delete(self):
        self.is_deleted = True
        self.deleted_at = datetime.utcnow()

    def restore(self):
        self.is_deleted = False
        self.deleted_at = None
