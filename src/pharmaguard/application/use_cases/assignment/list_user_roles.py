"""List user roles use case."""

from pharmaguard.application.ports import PermissionChecker
from pharmaguard.application.services.role_assignment import RoleAssignmentStore
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.actor import authorize_actor
from pharmaguard.domain.entities import UserRoleAssignment

VIEW_OTHERS_ACTION = "team.manage"


class ListUserRolesUseCase:
    """List a user's role assignments. Users may always list their own."""

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
        self, actor_id: str, user_id: str, include_inactive: bool = False
    ) -> list[UserRoleAssignment]:
        if actor_id != user_id:
            await authorize_actor(
                self._uow_factory,
                self._context_loader,
                self._permission_checker,
                actor_id,
                VIEW_OTHERS_ACTION,
                target_user_id=user_id,
            )
        return await self._assignments.list_assignments(user_id, include_inactive=include_inactive)
