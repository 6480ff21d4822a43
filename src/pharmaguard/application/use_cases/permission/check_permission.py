"""Check permission use case."""

from pharmaguard.application.dto.resolution import PermissionDecision
from pharmaguard.application.services.permission_resolver import DynamicPermissionResolver
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.domain.exceptions import UserNotFound


class CheckPermissionUseCase:
    """Decide whether a user may perform an action in their workspace."""

    def __init__(
        self,
        unit_of_work_factory: type,
        context_loader: WorkspaceContextLoader,
        resolver: DynamicPermissionResolver,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._context_loader = context_loader
        self._resolver = resolver

    async def execute(self, user_id: str, action: str, explain: bool = False) -> PermissionDecision:
        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
        if user is None:
            raise UserNotFound(user_id)

        context = await self._context_loader.load(user_id)
        if explain:
            return await self._resolver.explain(user, action, context)
        return await self._resolver.evaluate(user, action, context)
