"""
Board and Board Task Schemas
"""
from pydantic import BaseModel, Field
from typing import Any, Literal, Optional
from datetime import datetime


class BoardCreate(BaseModel):
    project_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    type: Literal["Kanban", "Scrum"] = "Kanban"
    configuration: dict[str, Any] = {}


class BoardReplace(BoardCreate):
    pass


class BoardResponse(BaseModel):
    id: str
    tenant_id: str
    project_id: str
    name: str
    type: str
    configuration: dict[str, Any] = {}
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BoardTaskCreate(BaseModel):
    task_id: str = Field(..., min_length=1)
    position: int = Field(0, ge=0)
    column: str = Field("", max_length=100)


class BoardTaskUpdate(BaseModel):
    task_id: Optional[str] = None
    position: Optional[int] = Field(None, ge=0)
    column: Optional[str] = Field(None, max_length=100)


class BoardTaskResponse(BaseModel):
    id: str
    board_id: str
    task_id: str
    position: int
    column: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
