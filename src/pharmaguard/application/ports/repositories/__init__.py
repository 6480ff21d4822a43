"""Repository ports."""

from pharmaguard.application.ports.repositories.assignment_repository import (
    AssignmentRepository,
)
from pharmaguard.application.ports.repositories.role_repository import RoleRepository
from pharmaguard.application.ports.repositories.user_repository import UserRepository
from pharmaguard.application.ports.repositories.workspace_repository import (
    WorkspaceRepository,
)

__all__ = [
    "AssignmentRepository",
    "RoleRepository",
    "UserRepository",
    "WorkspaceRepository",
]
