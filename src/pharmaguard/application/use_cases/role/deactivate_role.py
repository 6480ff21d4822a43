"""Deactivate role use case."""

from pharmaguard.application.ports import PermissionChecker
from pharmaguard.application.services.role_hierarchy import RoleHierarchyStore
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.actor import authorize_actor
from pharmaguard.domain.entities import Role

ADMIN_ACTION = "admin.system_settings"


class DeactivateRoleUseCase:
    """Soft-delete a role."""

    def __init__(
        self,
        unit_of_work_factory: type,
        context_loader: WorkspaceContextLoader,
        permission_checker: PermissionChecker,
        roles: RoleHierarchyStore,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._context_loader = context_loader
        self._permission_checker = permission_checker
        self._roles = roles

    async def execute(self, actor_id: str, role_id: str) -> Role:
        await authorize_actor(
            self._uow_factory,
            self._context_loader,
            self._permission_checker,
            actor_id,
            ADMIN_ACTION,
        )
        return await self._roles.deactivate_role(role_id, actor=actor_id)
