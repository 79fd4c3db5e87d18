"""
Task Schemas

Enumerated fields are validated with Literal types so bad values are
rejected with a 422 before reaching the database.
"""
from pydantic import BaseModel, Field, model_validator
from typing import Literal, Optional
from datetime import datetime

from taskbrick.schemas.types import UtcDateTime

TaskType = Literal["Task", "Bug", "Epic", "Story"]
TaskPriority = Literal[
    "High", "Medium", "Low", "None", "Critical",
    "Blocker", "Major", "Minor", "Trivial", "Urgent",
]
TaskStatus = Literal[
    "ToDo", "InProgress", "Reviewed", "Done", "OnHold",
    "Cancelled", "Resolved", "Closed", "Reopened",
]
TaskTag = Literal["Bug", "Feature", "Improvement", "Documentation"]


class FileAttachment(BaseModel):
    filename: str
    url: str
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)


class TaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    summary: str = Field("", max_length=512)
    description: str = ""
    type: TaskType
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[datetime] = None
    tags: list[TaskTag] = []
    image_urls: list[str] = []
    file_attachments: list[FileAttachment] = []


class TaskCreate(TaskBase):
    project_id: str = Field(..., min_length=1)
    assignee_id: Optional[str] = None
    reporter_id: Optional[str] = None
    parent_id: Optional[str] = None
    team_id: Optional[str] = None


class TaskReplace(TaskCreate):
    """Full replacement (PUT); same shape as create."""
    pass


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    summary: Optional[str] = Field(None, max_length=512)
    description: Optional[str] = None
    type: Optional[TaskType] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    project_id: Optional[str] = None
    assignee_id: Optional[str] = None
    reporter_id: Optional[str] = None
    parent_id: Optional[str] = None
    team_id: Optional[str] = None
    due_date: Optional[datetime] = None
    tags: Optional[list[TaskTag]] = None
    image_urls: Optional[list[str]] = None
    file_attachments: Optional[list[FileAttachment]] = None


class TaskResponse(BaseModel):
    id: str
    tenant_id: str
    project_id: str
    title: str
    summary: str
    description: str
    type: str
    priority: str
    status: str
    assignee_id: Optional[str] = None
    reporter_id: Optional[str] = None
    parent_id: Optional[str] = None
    team_id: Optional[str] = None
    due_date: Optional[datetime] = None
    tags: list[str] = []
    image_urls: list[str] = []
    file_attachments: list[dict] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    total: int
    page: int
    page_size: int


class TimeLogCreate(BaseModel):
    start_time: UtcDateTime
    end_time: Optional[UtcDateTime] = None
    duration: Optional[int] = Field(None, ge=0, description="Minutes")
    logged_by: Optional[str] = None

    @model_validator(mode="after")
    def check_times(self):
        if self.end_time is not None and self.end_time < self.start_time:
            raise ValueError("end_time must not be before start_time")
        return self


class TimeLogResponse(BaseModel):
    id: str
    task_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: Optional[int] = None
    logged_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TaskLinkCreate(BaseModel):
    source_task_id: str = Field(..., min_length=1)
    target_task_id: str = Field(..., min_length=1)
    type: Literal["BlockedBy", "RelatedTo", "DuplicateOf"]


class TaskLinkResponse(BaseModel):
    id: str
    tenant_id: str
    source_task_id: str
    target_task_id: str
    type: str
    created_at: datetime

    class Config:
        from_attributes = True
