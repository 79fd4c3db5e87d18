"""
Custom Exceptions

Centralized exception definitions for better error handling.
FastAPI automatically converts these to appropriate HTTP responses.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Raised when a tenant-scoped entity cannot be found."""

    entity = "Resource"

    def __init__(self, identifier: str = ""):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{self.entity} not found: {identifier}" if identifier else f"{self.entity} not found"
        )


class TenantNotFoundError(NotFoundError):
    entity = "Tenant"


class UserNotFoundError(NotFoundError):
    entity = "User"


class ProjectNotFoundError(NotFoundError):
    entity = "Project"


class TaskNotFoundError(NotFoundError):
    entity = "Task"


class SprintNotFoundError(NotFoundError):
    entity = "Sprint"


class TeamNotFoundError(NotFoundError):
    entity = "Team"


class CommentNotFoundError(NotFoundError):
    entity = "Comment"


class BoardNotFoundError(NotFoundError):
    entity = "Board"


class ProfileNotFoundError(NotFoundError):
    entity = "Profile"


class SupplyNotFoundError(NotFoundError):
    entity = "Supply"


class ReorderRequestNotFoundError(NotFoundError):
    entity = "Reorder request"


class AuthenticationError(HTTPException):
    """Raised when authentication fails."""

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class TenantIsolationError(HTTPException):
    """
    Raised when a tenant isolation violation is detected.

    This is a CRITICAL security error and should be logged/alerted on.
    """

    def __init__(self, detail: str = "Tenant isolation violation"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class PermissionDenied(HTTPException):
    """Raised when the user's role doesn't allow the action."""

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class ConflictError(HTTPException):
    """Raised on duplicates and on operations the current state forbids."""

    def __init__(self, detail: Any = "Conflict"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail
        )


class InvalidTransitionError(ConflictError):
    """Raised when a reorder request can't move to the requested status."""

    def __init__(self, current: str, requested: str, allowed: Optional[list] = None):
        allowed = allowed or []
        super().__init__(
            detail={
                "message": f"Cannot change status from {current} to {requested}",
                "current_status": current,
                "allowed_statuses": allowed,
            }
        )


class InvalidInputError(HTTPException):
    """Raised when input is well-formed but not acceptable."""

    def __init__(self, detail: Any = "Invalid input"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class SprintTaskNotFoundError(NotFoundError):
    entity = "Sprint task"


class BoardTaskNotFoundError(NotFoundError):
    entity = "Board task"


class TaskLinkNotFoundError(NotFoundError):
    entity = "Task link"


class EventLogNotFoundError(NotFoundError):
    entity = "Event log"
