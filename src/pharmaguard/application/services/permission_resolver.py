"""Dynamic permission resolver - merges all permission signals into a decision.

Precedence, highest first:

1. unknown action or blocked user status: deny
2. explicit denial: deny (absolute, super admin included)
3. super admin: allow, no tenant gating
4. direct grant
5. assigned roles, own or inherited permissions
6. legacy system/workplace role match from the requirement matrix
7. otherwise deny

Grants from 4-6 are then gated by the tenant's subscription, plan tier and
features.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import structlog

from pharmaguard.application.dto.resolution import PermissionDecision, PermissionResolutionResult
from pharmaguard.application.dto.workspace_context import WorkspaceContext
from pharmaguard.application.ports import Cache
from pharmaguard.application.services.cache_invalidation import (
    CacheInvalidator,
    decision_key,
    resolution_key,
)
from pharmaguard.application.services.permission_catalog import ActionRequirementMatrix
from pharmaguard.application.services.role_assignment import RoleAssignmentStore
from pharmaguard.application.services.role_hierarchy import RoleHierarchyStore
from pharmaguard.domain.entities import Role, User
from pharmaguard.domain.exceptions import PermissionResolutionError
from pharmaguard.domain.permission_matrix import satisfies_system_role, satisfies_workplace_role
from pharmaguard.domain.value_objects import (
    LicenseStatus,
    PermissionSource,
    Requirement,
    SystemRole,
    UserStatus,
    WorkplaceRole,
)

log = structlog.get_logger(__name__)

_LICENSED_ROLES = frozenset({SystemRole.PHARMACIST, SystemRole.INTERN_PHARMACIST})
MAX_ROLE_SUGGESTIONS = 3
DEFAULT_DECISION_TTL = 300.0

# (source, detail, granting role id)
Grant = tuple[PermissionSource, str, str | None]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    value: Any
    valid_until: datetime | None


class _Validity:
    """Earliest instant at which a computed answer may stop holding."""

    __slots__ = ("until",)

    def __init__(self) -> None:
        self.until: datetime | None = None

    def cap(self, instant: datetime | None) -> None:
        if instant is not None and (self.until is None or instant < self.until):
            self.until = instant


class DynamicPermissionResolver:
    """Answers whether a user may perform an action in a workspace context."""

    def __init__(
        self,
        matrix: ActionRequirementMatrix,
        roles: RoleHierarchyStore,
        assignments: RoleAssignmentStore,
        cache: Cache,
        invalidator: CacheInvalidator,
        ttl: float = DEFAULT_DECISION_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._matrix = matrix
        self._roles = roles
        self._assignments = assignments
        self._cache = cache
        self._invalidator = invalidator
        self._ttl = ttl
        self._clock = clock

    async def check(self, user: User, action: str, context: WorkspaceContext) -> bool:
        decision = await self.evaluate(user, action, context)
        return decision.allowed

    async def evaluate(
        self, user: User, action: str, context: WorkspaceContext
    ) -> PermissionDecision:
        key = decision_key(user.id, context.workspace_id, action)
        cached = self._cached(key)
        if isinstance(cached, PermissionDecision):
            log.debug("permission_cache_hit", user_id=user.id, action=action)
            return cached

        generation = self._invalidator.decision_generation(user.id)
        validity = _Validity()
        decision = await self._guarded(
            user, action, self._decide(user, action, context, validity)
        )
        self._store(key, decision, user.id, generation, validity)
        return decision

    async def explain(
        self, user: User, action: str, context: WorkspaceContext
    ) -> PermissionDecision:
        """Uncached decision with suggestions on deny and the inheritance path on allow."""
        return await self._guarded(
            user, action, self._decide(user, action, context, _Validity(), explain=True)
        )

    async def resolve(self, user: User, context: WorkspaceContext) -> PermissionResolutionResult:
        """Every action the user may perform in the context, with attribution."""
        key = resolution_key(user.id, context.workspace_id)
        cached = self._cached(key)
        if isinstance(cached, PermissionResolutionResult):
            return cached

        generation = self._invalidator.decision_generation(user.id)
        validity = _Validity()
        result = await self._guarded(user, None, self._resolve(user, context, validity))
        self._store(key, result, user.id, generation, validity)
        return result

    async def warm(
        self, user: User, context: WorkspaceContext, actions: Iterable[str] | None = None
    ) -> int:
        """Pre-populate the decision cache. Returns the number of actions evaluated."""
        actions = list(actions) if actions is not None else self._matrix.actions()
        for action in actions:
            await self.evaluate(user, action, context)
        log.info("permission_cache_warmed", user_id=user.id, actions=len(actions))
        return len(actions)

    def cache_stats(self) -> dict:
        return self._cache.stats()

    def _cached(self, key: str):
        entry = self._cache.get(key)
        if not isinstance(entry, _CacheEntry):
            return None
        if entry.valid_until is not None and entry.valid_until <= self._clock():
            self._cache.delete(key)
            return None
        return entry.value

    def _store(
        self, key: str, value, user_id: str, generation: tuple, validity: _Validity
    ) -> None:
        """Cache value unless the user was invalidated meanwhile or a grant already lapsed."""
        if self._invalidator.decision_generation(user_id) != generation:
            log.debug("permission_cache_skip_stale", user_id=user_id, key=key)
            return
        ttl = self._ttl
        if validity.until is not None:
            remaining = (validity.until - self._clock()).total_seconds()
            if remaining <= 0:
                return
            ttl = min(ttl, remaining)
        self._cache.set(key, _CacheEntry(value, validity.until), ttl)

    async def _guarded(self, user: User, action: str | None, pending):
        """Await a resolution coroutine, turning store failures into PermissionResolutionError."""
        try:
            return await pending
        except PermissionResolutionError:
            raise
        except Exception as e:
            log.error(
                "permission_resolution_failed",
                user_id=user.id,
                action=action,
                error=str(e),
                error_type=type(e).__name__,
            )
            target = action or "permissions"
            raise PermissionResolutionError(
                user.id, action, f"Could not resolve {target} for user {user.id}: {e}"
            ) from e

    async def _decide(
        self,
        user: User,
        action: str,
        context: WorkspaceContext,
        validity: _Validity,
        explain: bool = False,
    ) -> PermissionDecision:
        requirement = self._matrix.get(action)
        if requirement is None:
            return PermissionDecision(action, False, reason=f"Unknown action: {action}")

        blocked = self._status_block(user)
        if blocked:
            return PermissionDecision(action, False, reason=blocked)

        if action in user.denied_permissions:
            return PermissionDecision(
                action,
                False,
                source=PermissionSource.DENIED,
                detail="denied",
                reason="Permission explicitly denied",
            )

        if user.is_super_admin:
            return PermissionDecision(
                action, True, source=PermissionSource.LEGACY, detail="system:super_admin"
            )

        grant = await self._grant_for(user, action, requirement, context, validity)
        if grant is None:
            return PermissionDecision(
                action,
                False,
                reason="No role, direct grant or legacy role grants this action",
                suggestions=(
                    await self._suggestions(user, action, context, validity) if explain else ()
                ),
            )

        source, detail, role_id = grant
        restriction = self._gate(requirement, context)
        if restriction:
            return PermissionDecision(
                action,
                False,
                detail=detail,
                reason=restriction,
                suggestions=(
                    await self._suggestions(user, action, context, validity) if explain else ()
                ),
            )

        path: tuple[Role, ...] = ()
        if explain and role_id is not None:
            path = tuple(await self._roles.inheritance_path(role_id))
        return PermissionDecision(action, True, source=source, detail=detail, inheritance_path=path)

    async def _resolve(
        self, user: User, context: WorkspaceContext, validity: _Validity
    ) -> PermissionResolutionResult:
        denied = frozenset(a for a in user.denied_permissions if a in self._matrix)
        if self._status_block(user):
            return PermissionResolutionResult(denied_permissions=denied)

        role_grants = await self._role_grants(user, context, validity)
        permissions: set[str] = set()
        sources: dict[str, PermissionSource] = {}
        details: dict[str, str] = {}
        restricted: dict[str, str] = {}

        for action, requirement in self._matrix.items():
            if action in denied:
                continue
            if user.is_super_admin:
                grant: Grant | None = (PermissionSource.LEGACY, "system:super_admin", None)
            elif action in user.direct_permissions:
                grant = (PermissionSource.DIRECT, "direct", None)
            else:
                grant = role_grants.get(action) or self._legacy_grant(user, requirement, context)
            if grant is None:
                continue

            if not user.is_super_admin:
                restriction = self._gate(requirement, context)
                if restriction:
                    restricted[action] = restriction
                    continue

            permissions.add(action)
            sources[action] = grant[0]
            details[action] = grant[1]

        return PermissionResolutionResult(
            permissions=frozenset(permissions),
            denied_permissions=denied,
            sources=sources,
            details=details,
            restricted=restricted,
        )

    async def _grant_for(
        self,
        user: User,
        action: str,
        requirement: Requirement,
        context: WorkspaceContext,
        validity: _Validity,
    ) -> Grant | None:
        if action in user.direct_permissions:
            return PermissionSource.DIRECT, "direct", None

        role_ids, until = await self._assignments.active_roles_until(user.id, context.workspace_id)
        validity.cap(until)
        inherited: Grant | None = None
        for role_id in sorted(role_ids):
            if action not in await self._roles.effective_permissions(role_id):
                continue
            declaring = (await self._roles.role_permission_sources(role_id))[action]
            if declaring.id == role_id:
                return PermissionSource.ROLE, f"role:{declaring.display_name}", role_id
            if inherited is None:
                inherited = (
                    PermissionSource.INHERITED,
                    f"inherited:{declaring.display_name}",
                    role_id,
                )
        if inherited is not None:
            return inherited

        return self._legacy_grant(user, requirement, context)

    async def _role_grants(
        self, user: User, context: WorkspaceContext, validity: _Validity
    ) -> dict[str, Grant]:
        """Role-derived grants for every action, own declarations before inherited ones."""
        role_ids, until = await self._assignments.active_roles_until(user.id, context.workspace_id)
        validity.cap(until)
        grants: dict[str, Grant] = {}
        for role_id in sorted(role_ids):
            # resolves the chain once and surfaces a missing role
            await self._roles.effective_permissions(role_id)
            for action, declaring in (await self._roles.role_permission_sources(role_id)).items():
                if declaring.id == role_id:
                    grant = (PermissionSource.ROLE, f"role:{declaring.display_name}", role_id)
                    current = grants.get(action)
                    if current is None or current[0] is not PermissionSource.ROLE:
                        grants[action] = grant
                else:
                    grants.setdefault(
                        action,
                        (PermissionSource.INHERITED, f"inherited:{declaring.display_name}", role_id),
                    )
        return grants

    def _legacy_grant(
        self, user: User, requirement: Requirement, context: WorkspaceContext
    ) -> Grant | None:
        if not requirement.has_role_constraints:
            return PermissionSource.LEGACY, "legacy:unrestricted", None

        for required in requirement.system_roles:
            if satisfies_system_role(user.system_role, required):
                return PermissionSource.LEGACY, f"system:{user.system_role}", None

        workplace_role = self._workplace_role(user, context)
        if workplace_role is not None:
            for required in requirement.workplace_roles:
                if satisfies_workplace_role(workplace_role, required):
                    return PermissionSource.LEGACY, f"workplace:{workplace_role}", None
        return None

    @staticmethod
    def _workplace_role(user: User, context: WorkspaceContext) -> WorkplaceRole | None:
        if user.workplace_role is not None:
            return user.workplace_role
        if context.workspace is not None and context.workspace.owner_id == user.id:
            return WorkplaceRole.OWNER
        return None

    @staticmethod
    def _status_block(user: User) -> str | None:
        if user.status == UserStatus.SUSPENDED:
            return "User account is suspended"
        if user.status == UserStatus.PENDING:
            return "User account is pending activation"
        if user.system_role in _LICENSED_ROLES and user.license_status == LicenseStatus.REJECTED:
            return "Pharmacist license was rejected"
        return None

    @staticmethod
    def _gate(requirement: Requirement, context: WorkspaceContext) -> str | None:
        """Reason the tenant cannot use the action, or None."""
        trial_bypass = requirement.allow_trial_access and context.is_in_trial

        if (
            requirement.requires_active_subscription
            and not trial_bypass
            and not context.is_subscription_active
        ):
            return "Active subscription required"

        minimum = requirement.minimum_tier
        if minimum is not None:
            tier = context.plan_tier
            if tier is None or not tier.at_least(minimum):
                return f"Requires {minimum} plan or higher"

        if not trial_bypass:
            missing = [f for f in requirement.features if not context.has_feature(f)]
            if missing:
                return "Missing required features: " + ", ".join(missing)
        return None

    async def _suggestions(
        self, user: User, action: str, context: WorkspaceContext, validity: _Validity
    ) -> tuple[str, ...]:
        resource = action.split(".", 1)[0]
        held = (await self._resolve(user, context, validity)).permissions
        related = sorted(p for p in held if p != action and p.split(".", 1)[0] == resource)
        roles = (await self._roles.roles_with_permission(action))[:MAX_ROLE_SUGGESTIONS]
        return tuple(
            [f"You have related permission: {p}" for p in related]
            + [f"Role '{r.display_name}' grants this permission" for r in roles]
        )
