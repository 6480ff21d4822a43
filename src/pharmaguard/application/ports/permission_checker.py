"""Permission checker port - RBAC authorization."""

from typing import Protocol

from pharmaguard.application.dto.workspace_context import WorkspaceContext
from pharmaguard.domain.entities import User


class PermissionChecker(Protocol):
    """Port for checking whether a user may perform an action."""

    async def check(self, user: User, action: str, context: WorkspaceContext) -> bool: ...
