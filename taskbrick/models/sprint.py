"""
Sprint Models

Sprints are time boxes within a project. Sprints of one project must not
overlap (enforced in the API layer).
"""
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index, UniqueConstraint
from datetime import datetime
from taskbrick.database import Base
import uuid


SPRINT_STATUSES = ("Planned", "Active", "Completed")


class Sprint(Base):
    __tablename__ = "sprints"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    goal = Column(Text, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String(20), nullable=False, default="Planned")

    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    modified_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_sprint_project_dates', 'project_id', 'start_date', 'end_date'),
    )

    def __repr__(self):
        return f"<Sprint {self.name} (project={self.project_id})>"


class SprintTask(Base):
    __tablename__ = "sprint_tasks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sprint_id = Column(String(36), ForeignKey("sprints.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('sprint_id', 'task_id', name='uq_sprint_task'),
    )
