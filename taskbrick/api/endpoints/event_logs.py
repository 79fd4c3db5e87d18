"""
Event Log Endpoints

Read access to the tenant's audit trail. Most entries are written by
the application itself (task creation, reorder status changes); clients
may add their own.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from taskbrick.database import get_db
from taskbrick.models.user import User
from taskbrick.models.event_log import EventLog
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.event_log import EventLogCreate, EventLogResponse
from taskbrick.api.deps import (
    get_current_tenant,
    get_current_user,
    get_or_404,
    require_admin,
    verify_path_tenant,
)
from taskbrick.core.exceptions import EventLogNotFoundError
from taskbrick.services.events import record_event

router = APIRouter(
    prefix="/tenants/{tenant_id}/event-logs",
    tags=["event-logs"],
    dependencies=[Depends(verify_path_tenant)],
)


@router.get("", response_model=list[EventLogResponse])
async def list_event_logs(
    event_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    query = db.query(EventLog).filter(EventLog.tenant_id == tenant.id)
    if event_type:
        query = query.filter(EventLog.event_type == event_type)
    if entity_id:
        query = query.filter(EventLog.entity_id == entity_id)
    return query.order_by(EventLog.created_at.desc()).limit(limit).all()


@router.post("", response_model=EventLogResponse, status_code=status.HTTP_201_CREATED)
async def create_event_log(
    body: EventLogCreate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    event = record_event(db, tenant.id, body.event_type, body.entity_id, current_user.id, body.details)
    db.commit()
    return event


@router.get("/{event_id}", response_model=EventLogResponse)
async def get_event_log(
    event_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return get_or_404(db, EventLog, event_id, tenant.id, EventLogNotFoundError)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_log(
    event_id: str,
    current_user: User = Depends(require_admin),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    event = get_or_404(db, EventLog, event_id, tenant.id, EventLogNotFoundError)
    db.delete(event)
    db.commit()
    return None
