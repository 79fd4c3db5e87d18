"""
Team Endpoints

Teams and their associations with users, tasks and projects.
Deleting a team removes its associations (ON DELETE CASCADE).
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskbrick.database import get_db
from taskbrick.models.user import User
from taskbrick.models.project import Project
from taskbrick.models.task import Task
from taskbrick.models.team import Team, TeamUser, ProjectTeam, TaskTeam
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.team import TeamCreate, TeamLinkResponse, TeamResponse, TeamUpdate
from taskbrick.schemas.user import UserSummary
from taskbrick.schemas.task import TaskResponse
from taskbrick.schemas.project import ProjectResponse
from taskbrick.api.deps import (
    get_current_tenant,
    get_current_user,
    get_member_or_404,
    get_project_or_404,
    get_task_or_404,
    get_team_or_404,
    verify_path_tenant,
)
from taskbrick.core.exceptions import ConflictError, NotFoundError
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tenants/{tenant_id}/teams",
    tags=["teams"],
    dependencies=[Depends(verify_path_tenant)],
)


def _add_link(db: Session, link, what: str):
    """Insert a join row; the unique constraint turns a duplicate into 409."""
    db.add(link)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"{what} is already assigned to this team")
    return link


@router.get("", response_model=list[TeamResponse])
async def list_teams(
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return db.query(Team).filter(Team.tenant_id == tenant.id).order_by(Team.name).all()


@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    body: TeamCreate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = Team(tenant_id=tenant.id, name=body.name, description=body.description)
    db.add(team)
    db.commit()

    logger.info(f"Team created: {team.id} by {current_user.id}")
    return team


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return get_team_or_404(db, tenant.id, team_id)


@router.put("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: str,
    body: TeamUpdate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = get_team_or_404(db, tenant.id, team_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(team, field, value)
    db.commit()

    logger.info(f"Team updated: {team.id} by {current_user.id}")
    return team


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = get_team_or_404(db, tenant.id, team_id)
    db.delete(team)
    db.commit()

    logger.info(f"Team deleted: {team_id} by {current_user.id}")
    return None


# ============================================================================
# MEMBERS
# ============================================================================

@router.post("/{team_id}/users/{user_id}", response_model=TeamLinkResponse, status_code=status.HTTP_201_CREATED)
async def add_team_user(
    team_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = get_team_or_404(db, tenant.id, team_id)
    user = get_member_or_404(db, tenant.id, user_id)
    return _add_link(db, TeamUser(team_id=team.id, user_id=user.id), "User")


@router.delete("/{team_id}/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_team_user(
    team_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = get_team_or_404(db, tenant.id, team_id)
    deleted = db.query(TeamUser).filter(
        TeamUser.team_id == team.id,
        TeamUser.user_id == user_id
    ).delete(synchronize_session=False)
    if not deleted:
        raise NotFoundError(f"user {user_id} in team {team.id}")
    db.commit()
    return None


@router.get("/{team_id}/users", response_model=list[UserSummary])
async def list_team_users(
    team_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = get_team_or_404(db, tenant.id, team_id)
    return db.query(User).join(TeamUser, TeamUser.user_id == User.id).filter(
        TeamUser.team_id == team.id
    ).order_by(User.first_name, User.last_name).all()


# ============================================================================
# TASKS
# ============================================================================

@router.post("/{team_id}/tasks/{task_id}", response_model=TeamLinkResponse, status_code=status.HTTP_201_CREATED)
async def add_team_task(
    team_id: str,
    task_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = get_team_or_404(db, tenant.id, team_id)
    task = get_task_or_404(db, tenant.id, task_id)
    return _add_link(db, TaskTeam(team_id=team.id, task_id=task.id), "Task")


@router.get("/{team_id}/tasks", response_model=list[TaskResponse])
async def list_team_tasks(
    team_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = get_team_or_404(db, tenant.id, team_id)
    return db.query(Task).join(TaskTeam, TaskTeam.task_id == Task.id).filter(
        TaskTeam.team_id == team.id,
        Task.tenant_id == tenant.id
    ).order_by(Task.created_at).all()


# ============================================================================
# PROJECTS
# ============================================================================

@router.post(
    "/{team_id}/projects/{project_id}",
    response_model=TeamLinkResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_team_project(
    team_id: str,
    project_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = get_team_or_404(db, tenant.id, team_id)
    project = get_project_or_404(db, tenant.id, project_id)
    return _add_link(db, ProjectTeam(team_id=team.id, project_id=project.id), "Project")


@router.delete("/{team_id}/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_team_project(
    team_id: str,
    project_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = get_team_or_404(db, tenant.id, team_id)
    deleted = db.query(ProjectTeam).filter(
        ProjectTeam.team_id == team.id,
        ProjectTeam.project_id == project_id
    ).delete(synchronize_session=False)
    if not deleted:
        raise NotFoundError(f"project {project_id} in team {team.id}")
    db.commit()
    return None


@router.get("/{team_id}/projects", response_model=list[ProjectResponse])
async def list_team_projects(
    team_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    team = get_team_or_404(db, tenant.id, team_id)
    return db.query(Project).join(ProjectTeam, ProjectTeam.project_id == Project.id).filter(
        ProjectTeam.team_id == team.id,
        Project.tenant_id == tenant.id,
        Project.is_deleted == False  # noqa: E712
    ).order_by(Project.name).all()
