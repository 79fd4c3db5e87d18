"""
Project Schemas

Request/response models for project operations.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

STATUS_PATTERN = "^(Active|Completed|OnHold)$"


class ProjectUpdateNote(BaseModel):
    content: str = Field(..., min_length=1)
    date: datetime = Field(default_factory=datetime.utcnow)


class ProjectBase(BaseModel):
    """Base project schema."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: str = Field("Active", pattern=STATUS_PATTERN)
    objectives: Optional[str] = None
    deadline: Optional[datetime] = None


class ProjectCreate(ProjectBase):
    """Schema for creating a project. creator_id defaults to the caller."""
    creator_id: Optional[str] = None
    updates: list[ProjectUpdateNote] = []


class ProjectReplace(ProjectBase):
    """Full replacement of the editable fields (PUT)."""
    updates: list[ProjectUpdateNote] = []


class ProjectUpdate(BaseModel):
    """Schema for updating a project. All fields optional."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)
    objectives: Optional[str] = None
    deadline: Optional[datetime] = None
    updates: Optional[list[ProjectUpdateNote]] = None


class ProjectResponse(ProjectBase):
    """Project response schema."""
    id: str
    tenant_id: str
    creator_id: Optional[str] = None
    updates: list[dict] = []
    is_deleted: bool
    deleted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProjectListResponse(BaseModel):
    """Paginated list of projects."""
    projects: list[ProjectResponse]
    total: int
    page: int
    page_size: int
