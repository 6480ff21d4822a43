"""Actor authorization shared by the admin use cases."""

from collections.abc import Iterable

from pharmaguard.application.dto.workspace_context import WorkspaceContext
from pharmaguard.application.ports import PermissionChecker
from pharmaguard.application.services.permission_catalog import ActionRequirementMatrix
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.domain.entities import User
from pharmaguard.domain.exceptions import PermissionDenied, UserNotFound
from pharmaguard.domain.permission_matrix import satisfies_system_role


async def authorize_actor(
    unit_of_work_factory: type,
    context_loader: WorkspaceContextLoader,
    permission_checker: PermissionChecker,
    actor_id: str,
    action: str,
    *,
    target_user_id: str | None = None,
    workspace_id: str | None = None,
) -> User:
    """Load the acting user and require action in their workspace.

    With target_user_id the target must exist and belong to the actor's
    workspace; with workspace_id that scope must be the actor's workspace.
    Super admins manage every tenant.
    """
    async with unit_of_work_factory() as uow:
        actor = await uow.users.get_by_id(actor_id)
        target = await uow.users.get_by_id(target_user_id) if target_user_id else None
    if actor is None:
        raise PermissionDenied(f"Unknown user {actor_id}")

    context = await context_loader.load(actor_id)
    if not await permission_checker.check(actor, action, context):
        raise PermissionDenied(f"User does not have {action} permission")

    if workspace_id is not None and not actor.is_super_admin:
        if workspace_id != context.workspace_id:
            raise PermissionDenied(f"Cannot manage workspace {workspace_id}")
    if target_user_id is not None:
        if target is None:
            raise UserNotFound(target_user_id)
        await ensure_same_workspace(context_loader, actor, context, target_user_id)
    return actor


async def ensure_same_workspace(
    context_loader: WorkspaceContextLoader,
    actor: User,
    actor_context: WorkspaceContext,
    user_id: str,
) -> None:
    """Raise PermissionDenied unless user_id works in the actor's workspace."""
    if actor.is_super_admin or user_id == actor.id:
        return
    target_context = await context_loader.load(user_id)
    workspace_id = actor_context.workspace_id
    if workspace_id is None or target_context.workspace_id != workspace_id:
        raise PermissionDenied(f"User {user_id} is not a member of your workspace")


def ensure_not_self(actor: User, user_id: str) -> None:
    """Only super admins may change their own grants."""
    if user_id == actor.id and not actor.is_super_admin:
        raise PermissionDenied("Users cannot change their own permissions")


def ungrantable(
    matrix: ActionRequirementMatrix, actor: User, actions: Iterable[str]
) -> list[str]:
    """Platform actions in actions that the actor's system role does not cover.

    An action is platform-level when only system roles may hold it. Anything
    a workplace role can hold is grantable by whoever manages the team.
    """
    if actor.is_super_admin:
        return []
    refused = []
    for action in dict.fromkeys(actions):
        requirement = matrix.get(action)
        if requirement is None or requirement.workplace_roles or not requirement.system_roles:
            continue
        if not any(satisfies_system_role(actor.system_role, r) for r in requirement.system_roles):
            refused.append(action)
    return refused


def ensure_grantable(
    matrix: ActionRequirementMatrix, actor: User, actions: Iterable[str]
) -> None:
    refused = ungrantable(matrix, actor, actions)
    if refused:
        raise PermissionDenied("Cannot grant platform permissions: " + ", ".join(refused))
