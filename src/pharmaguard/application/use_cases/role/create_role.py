"""Create role use case."""

from pharmaguard.application.ports import PermissionChecker
from pharmaguard.application.services.role_hierarchy import RoleHierarchyStore
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.actor import authorize_actor
from pharmaguard.domain.entities import Role

ADMIN_ACTION = "admin.system_settings"


class CreateRoleUseCase:
    """Create a custom role, optionally under a parent."""

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

    async def execute(
        self,
        actor_id: str,
        name: str,
        display_name: str | None = None,
        permissions: list[str] | None = None,
        parent_id: str | None = None,
        category: str = "custom",
        description: str = "",
    ) -> Role:
        """Create role. Actor must have admin.system_settings."""
        await authorize_actor(
            self._uow_factory,
            self._context_loader,
            self._permission_checker,
            actor_id,
            ADMIN_ACTION,
        )
        return await self._roles.create_role(
            name,
            display_name or name,
            actor=actor_id,
            permissions=permissions or [],
            parent_id=parent_id,
            category=category,
            description=description,
        )
