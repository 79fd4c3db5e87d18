"""
Project Management Endpoints

CRUD operations for projects within a tenant.

RBAC:
- List/view projects: All members
- Create project: Developer role or higher
- Update project: Developers and above (any project), creators (own)
- Delete project: Admin/ProjectManager or project creator; hard delete Admin only
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional, Union

from taskbrick.database import get_db
from taskbrick.models.user import User, UserRole
from taskbrick.models.project import Project
from taskbrick.models.team import Team, ProjectTeam
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.project import (
    ProjectCreate,
    ProjectListResponse,
    ProjectReplace,
    ProjectResponse,
    ProjectUpdate,
)
from taskbrick.schemas.team import TeamResponse
from taskbrick.api.deps import (
    blank_to_none,
    get_current_tenant,
    get_current_user,
    get_member_or_404,
    get_project_or_404,
    require_admin,
    require_developer,
    verify_path_tenant,
)
from taskbrick.core.permissions import can_delete_project, can_modify_project
from taskbrick.core.exceptions import PermissionDenied, ProjectNotFoundError
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/tenants/{tenant_id}",
    tags=["projects"],
    dependencies=[Depends(verify_path_tenant)],
)


def _serialize_updates(notes) -> list[dict]:
    return [note.model_dump(mode="json") for note in notes or []]


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None, pattern="^(Active|Completed|OnHold)$"),
    creator_id: Optional[str] = None,
    include_deleted: bool = False,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    List projects in current tenant.

    TENANT_ISOLATION: Automatically filtered by current tenant.
    """
    query = db.query(Project).filter(Project.tenant_id == tenant.id)

    if not include_deleted:
        query = query.filter(Project.is_deleted == False)  # noqa: E712
    if status:
        query = query.filter(Project.status == status)
    if creator_id:
        query = query.filter(Project.creator_id == creator_id)

    total = query.count()
    offset = (page - 1) * page_size
    projects = query.order_by(Project.created_at.desc()).offset(offset).limit(page_size).all()

    logger.debug(f"Listed {len(projects)} projects for tenant {tenant.id}")

    return ProjectListResponse(projects=projects, total=total, page=page, page_size=page_size)


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    current_user: User = Depends(require_developer),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Create a new project.

    The creator defaults to the caller; an explicit creator_id must be a
    member of the tenant.
    """
    creator_id = blank_to_none(project_data.creator_id) or current_user.id
    if creator_id != current_user.id:
        get_member_or_404(db, tenant.id, creator_id)

    new_project = Project(
        tenant_id=tenant.id,  # CRITICAL: Set tenant_id
        creator_id=creator_id,
        name=project_data.name,
        description=project_data.description,
        status=project_data.status,
        objectives=project_data.objectives,
        deadline=project_data.deadline,
        updates=_serialize_updates(project_data.updates),
    )

    db.add(new_project)
    db.commit()

    logger.info(f"Project created: {new_project.id} by {current_user.id}")
    return new_project


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return get_project_or_404(db, tenant.id, project_id)


async def _update(
    project_id: str,
    project_data: Union[ProjectUpdate, ProjectReplace],
    partial: bool,
    current_user: User,
    tenant: Tenant,
    db: Session,
) -> Project:
    project = get_project_or_404(db, tenant.id, project_id)

    if not can_modify_project(current_user, project.creator_id):
        raise PermissionDenied("Not authorized to modify this project")

    update_data = project_data.model_dump(exclude_unset=partial, exclude={"updates"})
    for field, value in update_data.items():
        if field in ("name", "status") and value is None:
            continue
        setattr(project, field, value)

    if not partial or project_data.updates is not None:
        project.updates = _serialize_updates(project_data.updates)

    db.commit()

    logger.info(f"Project updated: {project.id} by {current_user.id}")
    return project


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return await _update(project_id, project_data, True, current_user, tenant, db)


@router.put("/projects/{project_id}", response_model=ProjectResponse)
async def replace_project(
    project_id: str,
    project_data: ProjectReplace,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return await _update(project_id, project_data, False, current_user, tenant, db)


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    hard_delete: bool = Query(False, description="Permanently delete (admin only)"),
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Delete project (soft delete by default).

    PATTERN: Soft delete by default for easy recovery.
    Hard delete permanently removes the project and, by cascade, its
    tasks, sprints and boards.
    """
    project = get_project_or_404(db, tenant.id, project_id, include_deleted=True)

    if not can_delete_project(current_user, project.creator_id):
        raise PermissionDenied("Not authorized to delete this project")

    if hard_delete:
        if current_user.role != UserRole.ADMIN:
            raise PermissionDenied("Hard delete requires admin privileges")
        db.delete(project)
        logger.info(f"Project hard deleted: {project_id} by {current_user.id}")
    else:
        project.soft_delete()
        logger.info(f"Project soft deleted: {project_id} by {current_user.id}")

    db.commit()
    return None


@router.post("/projects/{project_id}/restore", response_model=ProjectResponse)
async def restore_project(
    project_id: str,
    current_user: User = Depends(require_admin),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Restore a soft-deleted project. Requires admin role."""
    project = db.query(Project).filter(
        Project.id == project_id,
        Project.tenant_id == tenant.id,  # CRITICAL
        Project.is_deleted == True  # noqa: E712
    ).first()

    if not project:
        raise ProjectNotFoundError(project_id)

    project.restore()
    db.commit()

    logger.info(f"Project restored: {project_id} by {current_user.id}")
    return project


@router.get("/projects/{project_id}/teams", response_model=list[TeamResponse])
async def list_project_teams(
    project_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    get_project_or_404(db, tenant.id, project_id)
    return db.query(Team).join(ProjectTeam, ProjectTeam.team_id == Team.id).filter(
        ProjectTeam.project_id == project_id,
        Team.tenant_id == tenant.id
    ).order_by(Team.name).all()


@router.get("/users/{user_id}/projects", response_model=list[ProjectResponse])
async def list_user_projects(
    user_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Projects created by a member of this tenant."""
    get_member_or_404(db, tenant.id, user_id)
    return db.query(Project).filter(
        Project.tenant_id == tenant.id,
        Project.creator_id == user_id,
        Project.is_deleted == False  # noqa: E712
    ).order_by(Project.created_at.desc()).all()
