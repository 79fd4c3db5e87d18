"""
Task Endpoints

Tasks, their assignment (team, reporter, assignee) and time tracking.
Every referenced id is resolved inside the current tenant; ids from
another tenant are reported as not found.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional, Union

from taskbrick.database import get_db
from taskbrick.models.user import User
from taskbrick.models.task import Task, TimeLog
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.task import (
    TaskCreate,
    TaskListResponse,
    TaskReplace,
    TaskResponse,
    TaskUpdate,
    TimeLogCreate,
    TimeLogResponse,
)
from taskbrick.api.deps import (
    blank_to_none,
    get_current_tenant,
    get_current_user,
    get_member_or_404,
    get_project_or_404,
    get_task_or_404,
    get_team_or_404,
    verify_path_tenant,
)
from taskbrick.core.exceptions import InvalidInputError
from taskbrick.services.events import record_event
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tenants/{tenant_id}/tasks",
    tags=["tasks"],
    dependencies=[Depends(verify_path_tenant)],
)

REFERENCE_FIELDS = ("assignee_id", "reporter_id", "parent_id", "team_id")


def _resolve_references(db: Session, tenant_id: str, data: dict, task_id: Optional[str] = None) -> dict:
    """
    Normalise optional ids and check each one exists in the tenant.

    Raises the matching NotFoundError for the first missing reference.
    """
    for field in REFERENCE_FIELDS:
        if field in data:
            data[field] = blank_to_none(data[field])

    if data.get("project_id"):
        get_project_or_404(db, tenant_id, data["project_id"])
    if data.get("assignee_id"):
        get_member_or_404(db, tenant_id, data["assignee_id"])
    if data.get("reporter_id"):
        get_member_or_404(db, tenant_id, data["reporter_id"])
    if data.get("team_id"):
        get_team_or_404(db, tenant_id, data["team_id"])
    if data.get("parent_id"):
        if task_id and data["parent_id"] == task_id:
            raise InvalidInputError("A task cannot be its own parent")
        get_task_or_404(db, tenant_id, data["parent_id"])
    return data


def _dump_attachments(data: dict) -> dict:
    # JSON column: datetimes must be serialised first
    if data.get("file_attachments") is not None:
        data["file_attachments"] = [
            {**a, "uploaded_at": a["uploaded_at"].isoformat()} for a in data["file_attachments"]
        ]
    return data


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    data = _resolve_references(db, tenant.id, task_data.model_dump())
    data = _dump_attachments(data)

    task = Task(tenant_id=tenant.id, **data)
    db.add(task)
    db.flush()

    record_event(
        db, tenant.id, "task_created", task.id, current_user.id,
        {"title": task.title, "project_id": task.project_id},
    )
    db.commit()

    logger.info(f"Task created: {task.id} by {current_user.id}")
    return task


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    project_id: Optional[str] = None,
    status: Optional[str] = None,
    assignee_id: Optional[str] = None,
    team_id: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    query = db.query(Task).filter(Task.tenant_id == tenant.id)

    if project_id:
        query = query.filter(Task.project_id == project_id)
    if status:
        query = query.filter(Task.status == status)
    if assignee_id:
        query = query.filter(Task.assignee_id == assignee_id)
    if team_id:
        query = query.filter(Task.team_id == team_id)

    total = query.count()
    offset = (page - 1) * page_size
    tasks = query.order_by(Task.created_at.desc()).offset(offset).limit(page_size).all()

    return TaskListResponse(tasks=tasks, total=total, page=page, page_size=page_size)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return get_task_or_404(db, tenant.id, task_id)


async def _update(
    task_id: str,
    task_data: Union[TaskUpdate, TaskReplace],
    partial: bool,
    current_user: User,
    tenant: Tenant,
    db: Session,
) -> Task:
    task = get_task_or_404(db, tenant.id, task_id)

    data = task_data.model_dump(exclude_unset=partial)
    # Required columns can't be cleared by a partial update
    for field in ("title", "type", "priority", "status", "project_id", "summary", "description"):
        if field in data and data[field] is None:
            data.pop(field)
    for field in ("tags", "image_urls", "file_attachments"):
        if field in data and data[field] is None:
            data[field] = []

    data = _resolve_references(db, tenant.id, data, task_id=task.id)
    data = _dump_attachments(data)

    for field, value in data.items():
        setattr(task, field, value)
    db.commit()

    logger.info(f"Task updated: {task.id} by {current_user.id}")
    return task


@router.put("/{task_id}", response_model=TaskResponse)
async def replace_task(
    task_id: str,
    task_data: TaskReplace,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return await _update(task_id, task_data, False, current_user, tenant, db)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return await _update(task_id, task_data, True, current_user, tenant, db)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    task = get_task_or_404(db, tenant.id, task_id)
    db.delete(task)
    record_event(db, tenant.id, "task_deleted", task_id, current_user.id, {"title": task.title})
    db.commit()

    logger.info(f"Task deleted: {task_id} by {current_user.id}")
    return None


# ============================================================================
# ASSIGNMENT
# ============================================================================

def _set_reference(db: Session, task: Task, field: str, value: Optional[str], user_id: str) -> Task:
    setattr(task, field, value)
    record_event(
        db, task.tenant_id, "task_assigned" if value else "task_unassigned", task.id, user_id,
        {"field": field, "value": value},
    )
    db.commit()
    return task


@router.post("/{task_id}/assign-team/{team_id}", response_model=TaskResponse)
async def assign_team(
    task_id: str,
    team_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    task = get_task_or_404(db, tenant.id, task_id)
    get_team_or_404(db, tenant.id, team_id)
    return _set_reference(db, task, "team_id", team_id, current_user.id)


@router.patch("/{task_id}/unassign-team", response_model=TaskResponse)
async def unassign_team(
    task_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    task = get_task_or_404(db, tenant.id, task_id)
    return _set_reference(db, task, "team_id", None, current_user.id)


@router.post("/{task_id}/assign-reporter/{user_id}", response_model=TaskResponse)
async def assign_reporter(
    task_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    task = get_task_or_404(db, tenant.id, task_id)
    get_member_or_404(db, tenant.id, user_id)
    return _set_reference(db, task, "reporter_id", user_id, current_user.id)


@router.patch("/{task_id}/unassign-reporter", response_model=TaskResponse)
async def unassign_reporter(
    task_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    task = get_task_or_404(db, tenant.id, task_id)
    return _set_reference(db, task, "reporter_id", None, current_user.id)


@router.post("/{task_id}/assign-user/{user_id}", response_model=TaskResponse)
async def assign_user(
    task_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    task = get_task_or_404(db, tenant.id, task_id)
    get_member_or_404(db, tenant.id, user_id)
    return _set_reference(db, task, "assignee_id", user_id, current_user.id)


@router.patch("/{task_id}/unassign-user", response_model=TaskResponse)
async def unassign_user(
    task_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    task = get_task_or_404(db, tenant.id, task_id)
    return _set_reference(db, task, "assignee_id", None, current_user.id)


# ============================================================================
# TIME TRACKING
# ============================================================================

@router.post("/{task_id}/log-time", response_model=TimeLogResponse, status_code=status.HTTP_201_CREATED)
async def log_time(
    task_id: str,
    body: TimeLogCreate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Record time spent on a task.

    Duration (minutes) is derived from start and end when not given.
    """
    task = get_task_or_404(db, tenant.id, task_id)

    logged_by = blank_to_none(body.logged_by) or current_user.id
    if logged_by != current_user.id:
        get_member_or_404(db, tenant.id, logged_by)

    duration = body.duration
    if duration is None and body.end_time is not None:
        duration = int((body.end_time - body.start_time).total_seconds() // 60)

    time_log = TimeLog(
        task_id=task.id,
        start_time=body.start_time,
        end_time=body.end_time,
        duration=duration,
        logged_by=logged_by,
    )
    db.add(time_log)
    db.commit()

    logger.info(f"Time logged on task {task.id}: {duration} min by {logged_by}")
    return time_log


@router.get("/{task_id}/time-logs", response_model=list[TimeLogResponse])
async def list_time_logs(
    task_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    get_task_or_404(db, tenant.id, task_id)
    return db.query(TimeLog).filter(TimeLog.task_id == task_id).order_by(TimeLog.start_time).all()
