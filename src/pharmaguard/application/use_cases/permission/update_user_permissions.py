"""Update user permissions use case."""

import structlog

from pharmaguard.application.ports import PermissionChecker
from pharmaguard.application.services.cache_invalidation import CacheInvalidator
from pharmaguard.application.services.permission_catalog import (
    ActionRequirementMatrix,
    PermissionCatalog,
)
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.actor import (
    authorize_actor,
    ensure_grantable,
    ensure_not_self,
)
from pharmaguard.domain.entities import User
from pharmaguard.domain.exceptions import UnknownPermission, UserNotFound, ValidationError

log = structlog.get_logger(__name__)

MANAGE_ACTION = "team.role_change"


def validate_permission_lists(
    catalog: PermissionCatalog, direct: list[str], denied: list[str]
) -> None:
    """Raise when an action is unknown, granted and denied, or conflicts with another grant."""
    unknown = catalog.unknown([*direct, *denied])
    if unknown:
        raise UnknownPermission(unknown)
    User.ensure_no_conflicts(direct, denied)

    granted = set(direct)
    for action in direct:
        permission = catalog.get(action)
        clashing = sorted(granted.intersection(permission.conflicts))
        if clashing:
            raise ValidationError(
                f"Permission {action} conflicts with: " + ", ".join(clashing)
            )


def merge_permission_lists(
    user: User,
    direct: list[str] | None,
    denied: list[str] | None,
    replace: bool,
) -> tuple[list[str], list[str]]:
    """New (direct, denied) lists. None keeps the current list.

    In merge mode a newly granted action leaves the denied list and vice versa.
    """
    if replace:
        new_direct = list(direct) if direct is not None else list(user.direct_permissions)
        new_denied = list(denied) if denied is not None else list(user.denied_permissions)
        return new_direct, new_denied

    added_direct = list(direct or [])
    added_denied = list(denied or [])
    new_direct = [p for p in user.direct_permissions if p not in added_denied] + added_direct
    new_denied = [p for p in user.denied_permissions if p not in added_direct] + added_denied
    return list(dict.fromkeys(new_direct)), list(dict.fromkeys(new_denied))


class UpdateUserPermissionsUseCase:
    """Set a user's direct grants and explicit denials."""

    def __init__(
        self,
        unit_of_work_factory: type,
        context_loader: WorkspaceContextLoader,
        permission_checker: PermissionChecker,
        catalog: PermissionCatalog,
        matrix: ActionRequirementMatrix,
        invalidator: CacheInvalidator,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._context_loader = context_loader
        self._permission_checker = permission_checker
        self._catalog = catalog
        self._matrix = matrix
        self._invalidator = invalidator

    async def execute(
        self,
        actor_id: str,
        user_id: str,
        direct_permissions: list[str] | None = None,
        denied_permissions: list[str] | None = None,
        replace: bool = True,
    ) -> User:
        """Replace (or merge into) the user's lists.

        The actor needs team.role_change in the user's workspace, may not edit
        themselves and may not hand out platform-only actions.
        """
        actor = await authorize_actor(
            self._uow_factory,
            self._context_loader,
            self._permission_checker,
            actor_id,
            MANAGE_ACTION,
            target_user_id=user_id,
        )
        ensure_not_self(actor, user_id)

        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
            if user is None:
                raise UserNotFound(user_id)
            direct, denied = merge_permission_lists(
                user, direct_permissions, denied_permissions, replace
            )
            validate_permission_lists(self._catalog, direct, denied)
            ensure_grantable(
                self._matrix, actor, [p for p in direct if p not in user.direct_permissions]
            )
            user.set_permissions(direct, denied)
            await uow.users.update_permissions(user)

        self._invalidator.user_changed(user_id)
        log.info(
            "user_permissions_updated",
            user_id=user_id,
            direct=len(user.direct_permissions),
            denied=len(user.denied_permissions),
            actor=actor_id,
        )
        return user
