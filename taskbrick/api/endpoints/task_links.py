"""
Task Link Endpoints

Directed relations between two tasks: BlockedBy, RelatedTo, DuplicateOf.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from taskbrick.database import get_db
from taskbrick.models.user import User
from taskbrick.models.task import TaskLink
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.task import TaskLinkCreate, TaskLinkResponse
from taskbrick.api.deps import (
    get_current_tenant,
    get_current_user,
    get_or_404,
    get_task_or_404,
    verify_path_tenant,
)
from taskbrick.core.exceptions import InvalidInputError, TaskLinkNotFoundError
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tenants/{tenant_id}/task-links",
    tags=["task-links"],
    dependencies=[Depends(verify_path_tenant)],
)


@router.get("", response_model=list[TaskLinkResponse])
async def list_task_links(
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return db.query(TaskLink).filter(TaskLink.tenant_id == tenant.id).order_by(TaskLink.created_at).all()


@router.post("", response_model=TaskLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_task_link(
    body: TaskLinkCreate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    if body.source_task_id == body.target_task_id:
        raise InvalidInputError("A task cannot be linked to itself")

    source = get_task_or_404(db, tenant.id, body.source_task_id)
    target = get_task_or_404(db, tenant.id, body.target_task_id)

    link = TaskLink(
        tenant_id=tenant.id,
        source_task_id=source.id,
        target_task_id=target.id,
        type=body.type,
    )
    db.add(link)
    db.commit()

    logger.info(f"Task link created: {source.id} {body.type} {target.id}")
    return link


@router.get("/{link_id}", response_model=TaskLinkResponse)
async def get_task_link(
    link_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return get_or_404(db, TaskLink, link_id, tenant.id, TaskLinkNotFoundError)


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task_link(
    link_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    link = get_or_404(db, TaskLink, link_id, tenant.id, TaskLinkNotFoundError)
    db.delete(link)
    db.commit()
    return None
