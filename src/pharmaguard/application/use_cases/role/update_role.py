"""Update role use case."""

from pharmaguard.application.ports import PermissionChecker
from pharmaguard.application.services.role_hierarchy import RoleHierarchyStore
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.actor import authorize_actor
from pharmaguard.domain.entities import Role

ADMIN_ACTION = "admin.system_settings"

# parent_id=KEEP_PARENT leaves the parent untouched; None makes the role a root
KEEP_PARENT = object()


class UpdateRoleUseCase:
    """Update role attributes, permissions or parent."""

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
        role_id: str,
        display_name: str | None = None,
        description: str | None = None,
        category: str | None = None,
        permissions: list[str] | None = None,
        parent_id: object = KEEP_PARENT,
    ) -> Role:
        await authorize_actor(
            self._uow_factory,
            self._context_loader,
            self._permission_checker,
            actor_id,
            ADMIN_ACTION,
        )
        if parent_id is not KEEP_PARENT:
            await self._roles.reparent(role_id, parent_id, actor=actor_id)
        return await self._roles.update_role(
            role_id,
            actor=actor_id,
            display_name=display_name,
            description=description,
            category=category,
            permissions=permissions,
        )
