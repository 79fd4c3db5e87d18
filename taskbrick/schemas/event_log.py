"""
Event Log Schemas
"""
from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime


class EventLogCreate(BaseModel):
    event_type: str = Field(..., min_length=1, max_length=100)
    entity_id: str = Field(..., min_length=1)
    details: dict[str, Any] = {}


class EventLogResponse(BaseModel):
    id: str
    tenant_id: str
    user_id: Optional[str] = None
    event_type: str
    entity_id: str
    details: dict[str, Any] = {}
    created_at: datetime

    class Config:
        from_attributes = True
