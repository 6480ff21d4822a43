"""Get user permissions use case."""

from pharmaguard.application.dto.resolution import PermissionResolutionResult
from pharmaguard.application.services.permission_resolver import DynamicPermissionResolver
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.actor import authorize_actor
from pharmaguard.domain.exceptions import UserNotFound

VIEW_OTHERS_ACTION = "team.manage"


class GetUserPermissionsUseCase:
    """Resolve every permission of a user. Users may always see their own."""

    def __init__(
        self,
        unit_of_work_factory: type,
        context_loader: WorkspaceContextLoader,
        resolver: DynamicPermissionResolver,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._context_loader = context_loader
        self._resolver = resolver

    async def execute(self, actor_id: str, user_id: str) -> PermissionResolutionResult:
        if actor_id != user_id:
            await authorize_actor(
                self._uow_factory,
                self._context_loader,
                self._resolver,
                actor_id,
                VIEW_OTHERS_ACTION,
                target_user_id=user_id,
            )

        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound(user_id)

        context = await self._context_loader.load(user_id)
        return await self._resolver.resolve(user, context)
