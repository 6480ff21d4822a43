"""Domain entities."""

from pharmaguard.domain.entities.assignment import UserRoleAssignment
from pharmaguard.domain.entities.permission import Permission
from pharmaguard.domain.entities.role import Role
from pharmaguard.domain.entities.user import User
from pharmaguard.domain.entities.workspace import Plan, Subscription, Workspace

__all__ = [
    "Permission",
    "Plan",
    "Role",
    "Subscription",
    "User",
    "UserRoleAssignment",
    "Workspace",
]
