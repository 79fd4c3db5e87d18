"""
Task Models

Tasks belong to a project inside a tenant. Time logs and task links hang
off tasks and are removed with them.
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index, Integer, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from taskbrick.database import Base
import uuid


TASK_TYPES = ("Task", "Bug", "Epic", "Story")
TASK_PRIORITIES = (
    "High", "Medium", "Low", "None", "Critical",
    "Blocker", "Major", "Minor", "Trivial", "Urgent",
)
TASK_STATUSES = (
    "ToDo", "InProgress", "Reviewed", "Done", "OnHold",
    "Cancelled", "Resolved", "Closed", "Reopened",
)
TASK_TAGS = ("Bug", "Feature", "Improvement", "Documentation")
TASK_LINK_TYPES = ("BlockedBy", "RelatedTo", "DuplicateOf")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    summary = Column(String(512), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    type = Column(String(20), nullable=False)
    priority = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, index=True)

    assignee_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    reporter_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    parent_id = Column(String(36), ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True)
    team_id = Column(String(36), ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True)

    due_date = Column(DateTime, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    image_urls = Column(JSON, nullable=False, default=list)
    # [{"filename": str, "url": str, "uploaded_at": iso-datetime}]
    file_attachments = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    time_logs = relationship(
        "TimeLog",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TimeLog.created_at",
    )

    __table_args__ = (
        Index('idx_task_tenant_project', 'tenant_id', 'project_id'),
        Index('idx_task_tenant_status', 'tenant_id', 'status'),
    )

    def __repr__(self):
        return f"<Task {self.title} (tenant={self.tenant_id})>"


class TimeLog(Base):
    __tablename__ = "time_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=True)
    duration = Column(Integer, nullable=True)  # minutes
    logged_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    task = relationship("Task", back_populates="time_logs")


class TaskLink(Base):
    """Directed relation between two tasks of the same tenant."""

    __tablename__ = "task_links"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    source_task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    target_task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
