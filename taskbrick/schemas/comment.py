"""
Comment Schemas

Create and update arrive as multipart forms, so only responses are
modelled here.
"""
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class CommentResponse(BaseModel):
    id: str
    tenant_id: str
    task_id: str
    user_id: Optional[str] = None
    author_first_name: Optional[str] = None
    body: str
    attachments: list[str] = []
    reactions: list[str] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
