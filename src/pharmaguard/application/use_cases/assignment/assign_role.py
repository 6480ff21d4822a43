"""Assign role use case."""

from datetime import datetime

from pharmaguard.application.ports import PermissionChecker
from pharmaguard.application.services.permission_catalog import ActionRequirementMatrix
from pharmaguard.application.services.role_assignment import RoleAssignmentStore
from pharmaguard.application.services.role_hierarchy import RoleHierarchyStore
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.actor import (
    authorize_actor,
    ensure_grantable,
    ensure_not_self,
)
from pharmaguard.domain.entities import UserRoleAssignment

MANAGE_ACTION = "team.role_change"


class AssignRoleUseCase:
    """Assign a role to a user, globally or within a workspace."""

    def __init__(
        self,
        unit_of_work_factory: type,
        context_loader: WorkspaceContextLoader,
        permission_checker: PermissionChecker,
        assignments: RoleAssignmentStore,
        roles: RoleHierarchyStore,
        matrix: ActionRequirementMatrix,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._context_loader = context_loader
        self._permission_checker = permission_checker
        self._assignments = assignments
        self._roles = roles
        self._matrix = matrix

    async def execute(
        self,
        actor_id: str,
        user_id: str,
        role_id: str,
        workspace_id: str | None = None,
        temporary: bool = False,
        expires_at: datetime | None = None,
        reason: str | None = None,
        replace: bool = False,
    ) -> UserRoleAssignment:
        """Assign role_id to user_id.

        The actor needs team.role_change over the user and the scope, and the
        role may not carry platform-only actions the actor lacks.
        """
        actor = await authorize_actor(
            self._uow_factory,
            self._context_loader,
            self._permission_checker,
            actor_id,
            MANAGE_ACTION,
            target_user_id=user_id,
            workspace_id=workspace_id,
        )
        ensure_not_self(actor, user_id)
        ensure_grantable(self._matrix, actor, await self._roles.effective_permissions(role_id))
        return await self._assignments.assign(
            user_id,
            role_id,
            actor=actor_id,
            workspace_id=workspace_id,
            temporary=temporary,
            expires_at=expires_at,
            reason=reason,
            replace=replace,
        )
