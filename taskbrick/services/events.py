"""
Event recording.

Adds an EventLog row to the caller's session; the caller's commit persists
it together with the change it describes.
"""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from taskbrick.models.event_log import EventLog


def record_event(
    db: Session,
    tenant_id: str,
    event_type: str,
    entity_id: str,
    user_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> EventLog:
    event = EventLog(
        tenant_id=tenant_id,
        user_id=user_id,
        event_type=event_type,
        entity_id=entity_id,
        details=details or {},
    )
    db.add(event)
    return event
