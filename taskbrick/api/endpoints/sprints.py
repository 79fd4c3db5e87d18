"""
Sprint Endpoints

Sprints belong to a project. Writes require ProjectManager or Admin.
Two sprints of the same project may not overlap in time.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional

from taskbrick.database import get_db
from taskbrick.models.user import User
from taskbrick.models.project import Project
from taskbrick.models.sprint import Sprint, SprintTask
from taskbrick.models.task import Task
from taskbrick.models.team import Team
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.sprint import (
    SprintCreate,
    SprintReplace,
    SprintResponse,
    SprintTaskAdd,
    SprintTaskDetail,
    SprintTaskResponse,
    SprintUpdate,
)
from taskbrick.api.deps import (
    get_current_tenant,
    get_current_user,
    get_project_or_404,
    get_sprint_or_404,
    get_task_or_404,
    require_project_manager,
    verify_path_tenant,
)
from taskbrick.core.exceptions import ConflictError, PermissionDenied, SprintTaskNotFoundError
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tenants/{tenant_id}",
    tags=["sprints"],
    dependencies=[Depends(verify_path_tenant)],
)


def _check_dates(start_date: datetime, end_date: datetime) -> None:
    if end_date <= start_date:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end_date must be after start_date"
        )


def _check_overlap(
    db: Session,
    project_id: str,
    start_date: datetime,
    end_date: datetime,
    exclude_id: Optional[str] = None,
) -> None:
    """Raise 409 listing the sprints of the project that overlap [start, end]."""
    query = db.query(Sprint).filter(
        Sprint.project_id == project_id,
        Sprint.start_date < end_date,
        Sprint.end_date > start_date,
    )
    if exclude_id:
        query = query.filter(Sprint.id != exclude_id)
    overlapping = query.order_by(Sprint.start_date).all()

    if overlapping:
        raise ConflictError({
            "message": "Sprint dates overlap with existing sprints in this project",
            "overlapping_sprints": [
                {
                    "id": s.id,
                    "name": s.name,
                    "start_date": s.start_date.isoformat(),
                    "end_date": s.end_date.isoformat(),
                }
                for s in overlapping
            ],
        })


@router.post(
    "/projects/{project_id}/sprints",
    response_model=SprintResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_sprint(
    project_id: str,
    body: SprintCreate,
    current_user: User = Depends(require_project_manager),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    project = get_project_or_404(db, tenant.id, project_id)
    _check_overlap(db, project.id, body.start_date, body.end_date)

    sprint = Sprint(
        tenant_id=tenant.id,
        project_id=project.id,
        created_by=current_user.id,
        modified_by=current_user.id,
        **body.model_dump(),
    )
    db.add(sprint)
    db.commit()

    logger.info(f"Sprint created: {sprint.id} in project {project.id} by {current_user.id}")
    return sprint


@router.get("/projects/{project_id}/sprints", response_model=list[SprintResponse])
async def list_sprints(
    project_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    get_project_or_404(db, tenant.id, project_id)
    return db.query(Sprint).filter(
        Sprint.tenant_id == tenant.id,
        Sprint.project_id == project_id
    ).order_by(Sprint.start_date).all()


@router.get("/sprints/{sprint_id}", response_model=SprintResponse)
async def get_sprint(
    sprint_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return get_sprint_or_404(db, tenant.id, sprint_id)


def _apply_sprint_changes(db: Session, sprint: Sprint, changes: dict, current_user: User) -> Sprint:
    changes = {k: v for k, v in changes.items() if v is not None or k == "goal"}
    start_date = changes.get("start_date", sprint.start_date)
    end_date = changes.get("end_date", sprint.end_date)
    _check_dates(start_date, end_date)
    _check_overlap(db, sprint.project_id, start_date, end_date, exclude_id=sprint.id)

    for field, value in changes.items():
        setattr(sprint, field, value)
    sprint.modified_by = current_user.id
    db.commit()

    logger.info(f"Sprint updated: {sprint.id} by {current_user.id}")
    return sprint


@router.put("/sprints/{sprint_id}", response_model=SprintResponse)
async def replace_sprint(
    sprint_id: str,
    body: SprintReplace,
    current_user: User = Depends(require_project_manager),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    sprint = get_sprint_or_404(db, tenant.id, sprint_id)
    return _apply_sprint_changes(db, sprint, body.model_dump(), current_user)


@router.patch("/sprints/{sprint_id}", response_model=SprintResponse)
async def update_sprint(
    sprint_id: str,
    body: SprintUpdate,
    current_user: User = Depends(require_project_manager),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    sprint = get_sprint_or_404(db, tenant.id, sprint_id)
    return _apply_sprint_changes(db, sprint, body.model_dump(exclude_unset=True), current_user)


@router.delete("/sprints/{sprint_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_sprint(
    sprint_id: str,
    current_user: User = Depends(require_project_manager),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    sprint = get_sprint_or_404(db, tenant.id, sprint_id)
    db.delete(sprint)
    db.commit()

    logger.info(f"Sprint deleted: {sprint_id} by {current_user.id}")
    return None


# ============================================================================
# SPRINT TASKS
# ============================================================================

@router.post(
    "/sprints/{sprint_id}/tasks",
    response_model=list[SprintTaskResponse],
    status_code=status.HTTP_201_CREATED,
)
async def add_sprint_tasks(
    sprint_id: str,
    body: SprintTaskAdd,
    current_user: User = Depends(require_project_manager),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Add tasks to a sprint. Tasks already in the sprint are skipped.

    Returns only the newly created entries.
    """
    sprint = get_sprint_or_404(db, tenant.id, sprint_id)
    if sprint.status == "Completed":
        raise PermissionDenied("Cannot add tasks to a completed sprint")

    task_ids = list(dict.fromkeys(body.task_ids))
    for task_id in task_ids:
        get_task_or_404(db, tenant.id, task_id)

    existing = {
        row.task_id for row in db.query(SprintTask).filter(
            SprintTask.sprint_id == sprint.id,
            SprintTask.task_id.in_(task_ids)
        )
    }

    created = []
    for task_id in task_ids:
        if task_id in existing:
            continue
        sprint_task = SprintTask(sprint_id=sprint.id, task_id=task_id)
        db.add(sprint_task)
        created.append(sprint_task)
    db.commit()

    logger.info(f"Added {len(created)} task(s) to sprint {sprint.id} ({len(existing)} already present)")
    return created


@router.get("/sprints/{sprint_id}/tasks", response_model=list[SprintTaskDetail])
async def list_sprint_tasks(
    sprint_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    sprint = get_sprint_or_404(db, tenant.id, sprint_id)

    rows = db.query(SprintTask, Task).join(Task, Task.id == SprintTask.task_id).filter(
        SprintTask.sprint_id == sprint.id,
        Task.tenant_id == tenant.id
    ).order_by(SprintTask.created_at).all()

    # One lookup per referenced table instead of one per task
    user_ids = {t.assignee_id for _, t in rows} | {t.reporter_id for _, t in rows}
    users = {u.id: u for u in db.query(User).filter(User.id.in_([i for i in user_ids if i]))}
    projects = {p.id: p for p in db.query(Project).filter(Project.id.in_([t.project_id for _, t in rows]))}
    teams = {tm.id: tm for tm in db.query(Team).filter(Team.id.in_([t.team_id for _, t in rows if t.team_id]))}

    def _name(obj):
        return obj.full_name if obj else None

    return [
        SprintTaskDetail(
            sprint_task_id=st.id,
            task_id=task.id,
            title=task.title,
            status=task.status,
            priority=task.priority,
            type=task.type,
            assignee_name=_name(users.get(task.assignee_id)),
            reporter_name=_name(users.get(task.reporter_id)),
            project_name=projects[task.project_id].name if task.project_id in projects else None,
            team_name=teams[task.team_id].name if task.team_id in teams else None,
        )
        for st, task in rows
    ]


@router.delete("/sprint-tasks/{sprint_task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_sprint_task(
    sprint_task_id: str,
    current_user: User = Depends(require_project_manager),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    sprint_task = db.query(SprintTask).join(Sprint, Sprint.id == SprintTask.sprint_id).filter(
        SprintTask.id == sprint_task_id,
        Sprint.tenant_id == tenant.id  # CRITICAL: Tenant isolation
    ).first()
    if not sprint_task:
        raise SprintTaskNotFoundError(sprint_task_id)

    db.delete(sprint_task)
    db.commit()
    return None
