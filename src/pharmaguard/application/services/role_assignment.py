"""User role assignment store - who holds which role, where and until when."""

from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from uuid import uuid4

import structlog

from pharmaguard.application.dto.bulk import BulkAssignmentResult
from pharmaguard.application.services.cache_invalidation import CacheInvalidator
from pharmaguard.domain.entities import UserRoleAssignment
from pharmaguard.domain.exceptions import (
    AssignmentNotFound,
    DuplicateAssignment,
    InvalidExpiry,
    PharmaGuardError,
    RoleNotFound,
    UserNotFound,
)

log = structlog.get_logger(__name__)

SYSTEM_ACTOR = "system"
REPLACED_REASON = "Replaced by new role assignment"
EXPIRED_REASON = "Assignment expired"


def _utcnow() -> datetime:
    return datetime.now(UTC)


class RoleAssignmentStore:
    """Source of truth for user role assignments.

    Expiry is applied lazily on read; expire_assignments() additionally
    revokes lapsed rows so they stop showing up as active.
    """

    def __init__(
        self,
        unit_of_work_factory: type,
        invalidator: CacheInvalidator,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._invalidator = invalidator
        self._clock = clock

    async def assign(
        self,
        user_id: str,
        role_id: str,
        *,
        actor: str,
        workspace_id: str | None = None,
        temporary: bool = False,
        expires_at: datetime | None = None,
        reason: str | None = None,
        replace: bool = False,
    ) -> UserRoleAssignment:
        """Give user_id the role, globally or in workspace_id.

        With replace=True every active assignment of the user in the same
        scope is revoked first, in the same transaction.
        """
        now = self._clock()
        self._check_expiry(now, temporary, expires_at)

        async with self._uow_factory() as uow:
            await self._require_role(uow, role_id)
            if await uow.users.get_by_id(user_id) is None:
                raise UserNotFound(user_id)

            in_scope = await uow.assignments.list_active_in_scope(user_id, workspace_id)
            if replace:
                for existing in in_scope:
                    existing.revoke(actor, now, REPLACED_REASON)
                    await uow.assignments.update(existing)
            elif any(a.role_id == role_id and not a.is_expired(now) for a in in_scope):
                raise DuplicateAssignment("User already has this role assignment")

            assignment = await uow.assignments.create(
                self._new_assignment(
                    user_id, role_id, actor, now, workspace_id, temporary, expires_at, reason
                )
            )
            await self._rebuild_assigned_roles(uow, user_id, now)

        self._invalidator.user_changed(user_id)
        log.info(
            "role_assigned",
            user_id=user_id,
            role_id=role_id,
            workspace_id=workspace_id,
            temporary=temporary,
            replaced=replace,
            actor=actor,
        )
        return assignment

    async def revoke(
        self,
        user_id: str,
        role_id: str,
        *,
        actor: str,
        workspace_id: str | None = None,
        reason: str | None = None,
    ) -> UserRoleAssignment:
        now = self._clock()
        async with self._uow_factory() as uow:
            in_scope = await uow.assignments.list_active_in_scope(user_id, workspace_id)
            matching = [a for a in in_scope if a.role_id == role_id]
            if not matching:
                raise AssignmentNotFound("Assignment", f"{user_id}/{role_id}")
            for assignment in matching:
                assignment.revoke(actor, now, reason)
                await uow.assignments.update(assignment)
            await self._rebuild_assigned_roles(uow, user_id, now)

        self._invalidator.user_changed(user_id)
        log.info(
            "role_revoked",
            user_id=user_id,
            role_id=role_id,
            workspace_id=workspace_id,
            actor=actor,
        )
        return matching[0]

    async def active_roles_for(self, user_id: str, workspace_id: str | None = None) -> frozenset[str]:
        """Role ids of effective assignments that are global or scoped to workspace_id."""
        role_ids, _ = await self.active_roles_until(user_id, workspace_id)
        return role_ids

    async def active_roles_until(
        self, user_id: str, workspace_id: str | None = None
    ) -> tuple[frozenset[str], datetime | None]:
        """active_roles_for() plus the earliest expiry among those assignments.

        Anything derived from the role set is valid only until that instant.
        """
        now = self._clock()
        async with self._uow_factory() as uow:
            assignments = await uow.assignments.list_by_user(user_id)
        effective = [a for a in assignments if a.is_effective(now) and a.applies_to(workspace_id)]
        expiries = [a.expires_at for a in effective if a.expires_at is not None]
        return frozenset(a.role_id for a in effective), min(expiries, default=None)

    async def list_assignments(
        self, user_id: str, include_inactive: bool = False
    ) -> list[UserRoleAssignment]:
        async with self._uow_factory() as uow:
            return await uow.assignments.list_by_user(user_id, include_inactive=include_inactive)

    async def replace_roles(
        self,
        user_id: str,
        role_ids: Iterable[str],
        *,
        actor: str,
        workspace_id: str | None = None,
        reason: str | None = None,
    ) -> list[UserRoleAssignment]:
        """Make role_ids the user's complete set of roles in the scope.

        All roles are validated before anything is revoked.
        """
        role_ids = list(dict.fromkeys(role_ids))
        async with self._uow_factory() as uow:
            created = await self.replace_roles_in(
                uow, user_id, role_ids, actor=actor, workspace_id=workspace_id, reason=reason
            )

        self._invalidator.user_changed(user_id)
        log.info(
            "roles_replaced",
            user_id=user_id,
            role_ids=role_ids,
            workspace_id=workspace_id,
            actor=actor,
        )
        return created

    async def replace_roles_in(
        self,
        uow: object,
        user_id: str,
        role_ids: list[str],
        *,
        actor: str,
        workspace_id: str | None = None,
        reason: str | None = None,
    ) -> list[UserRoleAssignment]:
        """replace_roles() inside a caller-owned unit of work.

        The caller commits and must call CacheInvalidator.user_changed afterwards.
        """
        now = self._clock()
        for role_id in role_ids:
            await self._require_role(uow, role_id)
        if await uow.users.get_by_id(user_id) is None:
            raise UserNotFound(user_id)

        for existing in await uow.assignments.list_active_in_scope(user_id, workspace_id):
            existing.revoke(actor, now, REPLACED_REASON)
            await uow.assignments.update(existing)

        created = []
        for role_id in role_ids:
            created.append(
                await uow.assignments.create(
                    self._new_assignment(
                        user_id, role_id, actor, now, workspace_id, False, None, reason
                    )
                )
            )
        await self._rebuild_assigned_roles(uow, user_id, now)
        return created

    async def bulk_assign(
        self,
        user_ids: Iterable[str],
        role_id: str,
        *,
        actor: str,
        workspace_id: str | None = None,
        temporary: bool = False,
        expires_at: datetime | None = None,
        reason: str | None = None,
    ) -> list[BulkAssignmentResult]:
        """Assign role to each user in its own transaction; one failure does not stop the rest."""
        results = []
        for user_id in user_ids:
            try:
                assignment = await self.assign(
                    user_id,
                    role_id,
                    actor=actor,
                    workspace_id=workspace_id,
                    temporary=temporary,
                    expires_at=expires_at,
                    reason=reason,
                )
            except PharmaGuardError as e:
                results.append(BulkAssignmentResult(user_id=user_id, success=False, error=str(e)))
            except Exception as e:
                log.exception("bulk_assign_failed", user_id=user_id, role_id=role_id)
                results.append(BulkAssignmentResult(user_id=user_id, success=False, error=str(e)))
            else:
                results.append(
                    BulkAssignmentResult(user_id=user_id, success=True, assignment=assignment)
                )
        return results

    async def bulk_revoke(
        self,
        user_ids: Iterable[str],
        role_id: str,
        *,
        actor: str,
        workspace_id: str | None = None,
        reason: str | None = None,
    ) -> list[BulkAssignmentResult]:
        results = []
        for user_id in user_ids:
            try:
                assignment = await self.revoke(
                    user_id, role_id, actor=actor, workspace_id=workspace_id, reason=reason
                )
            except PharmaGuardError as e:
                results.append(BulkAssignmentResult(user_id=user_id, success=False, error=str(e)))
            except Exception as e:
                log.exception("bulk_revoke_failed", user_id=user_id, role_id=role_id)
                results.append(BulkAssignmentResult(user_id=user_id, success=False, error=str(e)))
            else:
                results.append(
                    BulkAssignmentResult(user_id=user_id, success=True, assignment=assignment)
                )
        return results

    async def expire_assignments(self) -> int:
        """Revoke active assignments whose expiry has passed. Returns how many."""
        now = self._clock()
        async with self._uow_factory() as uow:
            expired = await uow.assignments.list_expired(now)
            for assignment in expired:
                assignment.revoke(SYSTEM_ACTOR, now, EXPIRED_REASON)
                await uow.assignments.update(assignment)
            user_ids = list(dict.fromkeys(a.user_id for a in expired))
            for user_id in user_ids:
                await self._rebuild_assigned_roles(uow, user_id, now)

        for user_id in user_ids:
            self._invalidator.user_changed(user_id)
        if expired:
            log.info("assignments_expired", count=len(expired), users=len(user_ids))
        return len(expired)

    @staticmethod
    def _check_expiry(now: datetime, temporary: bool, expires_at: datetime | None) -> None:
        if temporary and expires_at is None:
            raise InvalidExpiry("Temporary assignments require an expiry date")
        if expires_at is not None and expires_at <= now:
            raise InvalidExpiry("Expiry date must be in the future")

    @staticmethod
    async def _require_role(uow: object, role_id: str) -> None:
        role = await uow.roles.get_by_id(role_id)
        if role is None or not role.is_active:
            raise RoleNotFound(role_id)

    @staticmethod
    def _new_assignment(
        user_id: str,
        role_id: str,
        actor: str,
        now: datetime,
        workspace_id: str | None,
        temporary: bool,
        expires_at: datetime | None,
        reason: str | None,
    ) -> UserRoleAssignment:
        return UserRoleAssignment(
            id=str(uuid4()),
            user_id=user_id,
            role_id=role_id,
            assigned_by=actor,
            assigned_at=now,
            workspace_id=workspace_id,
            is_temporary=temporary,
            expires_at=expires_at,
            assignment_reason=reason,
        )

    @staticmethod
    async def _rebuild_assigned_roles(uow: object, user_id: str, now: datetime) -> None:
        """Recompute the user's denormalized role list from effective assignments."""
        assignments = await uow.assignments.list_by_user(user_id)
        role_ids = list(dict.fromkeys(a.role_id for a in assignments if a.is_effective(now)))
        await uow.users.set_assigned_roles(user_id, role_ids)
