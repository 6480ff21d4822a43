"""Invalidate workspace context use case - called when billing state changes."""

from pharmaguard.application.ports import PermissionChecker
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.actor import authorize_actor
from pharmaguard.domain.exceptions import WorkspaceNotFound

BILLING_ACTION = "subscription.manage"


class InvalidateWorkspaceContextUseCase:
    """Drop cached contexts and decisions for every user of a workspace."""

    def __init__(
        self,
        unit_of_work_factory: type,
        context_loader: WorkspaceContextLoader,
        permission_checker: PermissionChecker,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._context_loader = context_loader
        self._permission_checker = permission_checker

    async def execute(self, actor_id: str, workspace_id: str) -> list[str]:
        """Returns the ids of the users whose caches were dropped."""
        async with self._uow_factory() as uow:
            workspace = await uow.workspaces.get_by_id(workspace_id)
        if workspace is None:
            raise WorkspaceNotFound("Workspace", workspace_id)
        await authorize_actor(
            self._uow_factory,
            self._context_loader,
            self._permission_checker,
            actor_id,
            BILLING_ACTION,
            workspace_id=workspace_id,
        )

        self._context_loader.invalidate_workspace(workspace)
        return workspace.user_ids()
