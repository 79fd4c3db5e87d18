"""
TaskBrick API

Multi-tenant business-management backend: project and task tracking
(projects, tasks, sprints, teams, boards, comments) plus an inventory
and reorder workflow, with tenant isolation and JWT authentication.
"""

__version__ = "1.0.0"
