"""
Database Models

All tenant-scoped models include tenant_id for multi-tenant isolation.
Users are global identities linked to tenants through TenantMembership.
"""
from taskbrick.models.tenant import Tenant
from taskbrick.models.user import User, UserRole, TenantMembership, RefreshToken
from taskbrick.models.invitation import Invitation
from taskbrick.models.profile import Profile
from taskbrick.models.project import Project
from taskbrick.models.team import Team, TeamUser, ProjectTeam, TaskTeam
from taskbrick.models.task import Task, TimeLog, TaskLink
from taskbrick.models.sprint import Sprint, SprintTask
from taskbrick.models.comment import Comment
from taskbrick.models.board import Board, BoardTask
from taskbrick.models.event_log import EventLog
from taskbrick.models.supply import Supply, UsageLog
from taskbrick.models.reorder import ReorderRequest, ReorderStatus

__all__ = [
    "Tenant", "User", "UserRole", "TenantMembership", "RefreshToken",
    "Invitation", "Profile", "Project",
    "Team", "TeamUser", "ProjectTeam", "TaskTeam",
    "Task", "TimeLog", "TaskLink",
    "Sprint", "SprintTask", "Comment", "Board", "BoardTask", "EventLog",
    "Supply", "UsageLog", "ReorderRequest", "ReorderStatus",
]
