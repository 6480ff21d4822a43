"""Revoke role use case."""

from pharmaguard.application.ports import PermissionChecker
from pharmaguard.application.services.role_assignment import RoleAssignmentStore
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.actor import authorize_actor
from pharmaguard.domain.entities import UserRoleAssignment

MANAGE_ACTION = "team.role_change"


class RevokeRoleUseCase:
    """Revoke a role from a user."""

    def __init__(
        self,
        unit_of_work_factory: type,
        context_loader: WorkspaceContextLoader,
        permission_checker: PermissionChecker,
        assignments: RoleAssignmentStore,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._context_loader = context_loader
        self._permission_checker = permission_checker
        self._assignments = assignments

    async def execute(
        self,
        actor_id: str,
        user_id: str,
        role_id: str,
        workspace_id: str | None = None,
        reason: str | None = None,
    ) -> UserRoleAssignment:
        await authorize_actor(
            self._uow_factory,
            self._context_loader,
            self._permission_checker,
            actor_id,
            MANAGE_ACTION,
            target_user_id=user_id,
            workspace_id=workspace_id,
        )
        return await self._assignments.revoke(
            user_id, role_id, actor=actor_id, workspace_id=workspace_id, reason=reason
        )
