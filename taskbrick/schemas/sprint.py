"""
Sprint Schemas
"""
from pydantic import BaseModel, Field, model_validator
from typing import Literal, Optional
from datetime import datetime

from taskbrick.schemas.types import UtcDateTime as SprintDate

SprintStatus = Literal["Planned", "Active", "Completed"]


class SprintCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    goal: Optional[str] = None
    start_date: SprintDate
    end_date: SprintDate
    status: SprintStatus = "Planned"

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class SprintReplace(SprintCreate):
    pass


class SprintUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    goal: Optional[str] = None
    start_date: Optional[SprintDate] = None
    end_date: Optional[SprintDate] = None
    status: Optional[SprintStatus] = None


class SprintResponse(BaseModel):
    id: str
    tenant_id: str
    project_id: str
    name: str
    goal: Optional[str] = None
    start_date: datetime
    end_date: datetime
    status: str
    created_by: Optional[str] = None
    modified_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SprintTaskAdd(BaseModel):
    task_ids: list[str] = Field(..., min_length=1)


class SprintTaskResponse(BaseModel):
    id: str
    sprint_id: str
    task_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class SprintTaskDetail(BaseModel):
    """A sprint's task with the names a board needs to render it."""
    sprint_task_id: str
    task_id: str
    title: str
    status: str
    priority: str
    type: str
    assignee_name: Optional[str] = None
    reporter_name: Optional[str] = None
    project_name: Optional[str] = None
    team_name: Optional[str] = None
