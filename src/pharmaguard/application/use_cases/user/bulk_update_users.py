"""Bulk update users use case."""

from collections.abc import Sequence

import structlog

from pharmaguard.application.dto.bulk import UserUpdateInput, UserUpdateResult
from pharmaguard.application.ports import PermissionChecker
from pharmaguard.application.services.cache_invalidation import CacheInvalidator
from pharmaguard.application.services.permission_catalog import (
    ActionRequirementMatrix,
    PermissionCatalog,
)
from pharmaguard.application.services.role_assignment import RoleAssignmentStore
from pharmaguard.application.services.role_hierarchy import RoleHierarchyStore
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.actor import (
    authorize_actor,
    ensure_not_self,
    ensure_same_workspace,
    ungrantable,
)
from pharmaguard.application.use_cases.permission.update_user_permissions import (
    merge_permission_lists,
    validate_permission_lists,
)
from pharmaguard.domain.entities import User
from pharmaguard.domain.exceptions import (
    BulkLimitExceeded,
    PermissionDenied,
    PharmaGuardError,
    ValidationError,
)

log = structlog.get_logger(__name__)

MANAGE_ACTION = "team.role_change"
BULK_UPDATE_LIMIT = 100


class BulkUpdateUsersUseCase:
    """Apply role and permission changes to many users.

    Each user is validated and written in its own transaction, so one bad
    entry does not block the others. dry_run validates without writing.
    """

    def __init__(
        self,
        unit_of_work_factory: type,
        context_loader: WorkspaceContextLoader,
        permission_checker: PermissionChecker,
        catalog: PermissionCatalog,
        assignments: RoleAssignmentStore,
        roles: RoleHierarchyStore,
        matrix: ActionRequirementMatrix,
        invalidator: CacheInvalidator,
        limit: int = BULK_UPDATE_LIMIT,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._context_loader = context_loader
        self._permission_checker = permission_checker
        self._catalog = catalog
        self._assignments = assignments
        self._roles = roles
        self._matrix = matrix
        self._invalidator = invalidator
        self._limit = limit

    async def execute(
        self,
        actor_id: str,
        updates: Sequence[UserUpdateInput],
        dry_run: bool = False,
    ) -> list[UserUpdateResult]:
        if not updates:
            raise ValidationError("No user updates given")
        if len(updates) > self._limit:
            raise BulkLimitExceeded(f"Cannot update more than {self._limit} users at once")

        actor = await authorize_actor(
            self._uow_factory,
            self._context_loader,
            self._permission_checker,
            actor_id,
            MANAGE_ACTION,
        )

        results = []
        for update in updates:
            result = await self._validate(actor, update)
            if result.errors or dry_run:
                result.success = not result.errors
                results.append(result)
                continue
            try:
                await self._apply(actor_id, update)
            except PharmaGuardError as e:
                result.errors.append(str(e))
            except Exception as e:
                log.exception("bulk_user_update_failed", user_id=update.user_id)
                result.errors.append(str(e))
            else:
                self._invalidator.user_changed(update.user_id)
            result.success = not result.errors
            results.append(result)

        log.info(
            "bulk_user_update",
            actor=actor_id,
            total=len(results),
            succeeded=sum(1 for r in results if r.success),
            dry_run=dry_run,
        )
        return results

    async def _validate(self, actor: User, update: UserUpdateInput) -> UserUpdateResult:
        result = UserUpdateResult(user_id=update.user_id, success=False)
        if (
            update.role_ids is None
            and update.direct_permissions is None
            and update.denied_permissions is None
        ):
            result.warnings.append("No changes requested")

        async with self._uow_factory() as uow:
            user = await uow.users.get_by_id(update.user_id)
            if user is None:
                result.errors.append(f"User {update.user_id} not found")
                return result

            role_ids: list[str] = []
            if update.role_ids is not None:
                for role_id in update.role_ids:
                    role = await uow.roles.get_by_id(role_id)
                    if role is None or not role.is_active:
                        result.errors.append(f"Role {role_id} not found or inactive")
                    else:
                        role_ids.append(role_id)
                current = await uow.assignments.list_active_in_scope(
                    update.user_id, update.workspace_id
                )
                result.changes["roles"] = {
                    "from": sorted(a.role_id for a in current),
                    "to": sorted(set(update.role_ids)),
                }

        try:
            await self._ensure_access(actor, update)
        except PermissionDenied as e:
            result.errors.append(str(e))
            return result

        granted: set[str] = set()
        for role_id in role_ids:
            try:
                granted.update(await self._roles.effective_permissions(role_id))
            except PharmaGuardError as e:
                result.errors.append(str(e))

        if update.direct_permissions is not None or update.denied_permissions is not None:
            direct, denied = merge_permission_lists(
                user, update.direct_permissions, update.denied_permissions, replace=True
            )
            try:
                validate_permission_lists(self._catalog, direct, denied)
            except ValidationError as e:
                result.errors.append(str(e))
            result.changes["direct_permissions"] = {
                "from": sorted(user.direct_permissions),
                "to": sorted(direct),
            }
            result.changes["denied_permissions"] = {
                "from": sorted(user.denied_permissions),
                "to": sorted(denied),
            }
            granted.update(p for p in direct if p not in user.direct_permissions)

        refused = ungrantable(self._matrix, actor, sorted(granted))
        if refused:
            result.errors.append("Cannot grant platform permissions: " + ", ".join(refused))
        return result

    async def _ensure_access(self, actor: User, update: UserUpdateInput) -> None:
        """The entry must target another user of the actor's own workspace."""
        ensure_not_self(actor, update.user_id)
        context = await self._context_loader.load(actor.id)
        if (
            update.workspace_id is not None
            and not actor.is_super_admin
            and update.workspace_id != context.workspace_id
        ):
            raise PermissionDenied(f"Cannot manage workspace {update.workspace_id}")
        await ensure_same_workspace(self._context_loader, actor, context, update.user_id)

    async def _apply(self, actor_id: str, update: UserUpdateInput) -> None:
        async with self._uow_factory() as uow:
            if update.role_ids is not None:
                await self._assignments.replace_roles_in(
                    uow,
                    update.user_id,
                    list(dict.fromkeys(update.role_ids)),
                    actor=actor_id,
                    workspace_id=update.workspace_id,
                    reason="Bulk update",
                )
            if update.direct_permissions is not None or update.denied_permissions is not None:
                user = await uow.users.get_by_id(update.user_id)
                direct, denied = merge_permission_lists(
                    user, update.direct_permissions, update.denied_permissions, replace=True
                )
                user.set_permissions(direct, denied)
                await uow.users.update_permissions(user)
