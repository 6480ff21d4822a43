"""Workspace context loader - tenant billing state for permission checks."""

import asyncio
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

import structlog

from pharmaguard.application.dto.workspace_context import PlanLimits, WorkspaceContext
from pharmaguard.application.ports import Cache
from pharmaguard.application.services.cache_invalidation import CacheInvalidator
from pharmaguard.domain.entities import Plan, Subscription, Workspace
from pharmaguard.domain.permission_matrix import DEFAULT_FEATURES, TIER_FEATURES
from pharmaguard.domain.value_objects import PlanTier, SubscriptionStatus

log = structlog.get_logger(__name__)

LOADABLE_STATUSES = frozenset(
    {
        SubscriptionStatus.TRIAL,
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.PAST_DUE,
        SubscriptionStatus.EXPIRED,
    }
)
ACTIVE_STATUSES = frozenset({SubscriptionStatus.TRIAL, SubscriptionStatus.ACTIVE})

_LIMIT_KEYS = {
    "patients": ("patients", "patientLimit"),
    "users": ("users", "teamSize"),
    "locations": ("locations",),
    "storage": ("storage",),
    "api_calls": ("api_calls", "apiCalls"),
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def plan_limits(plan: Plan | None) -> PlanLimits:
    if plan is None:
        return PlanLimits()
    values = {}
    for field_name, keys in _LIMIT_KEYS.items():
        values[field_name] = next(
            (plan.limits[k] for k in keys if plan.limits.get(k) is not None), None
        )
    return PlanLimits(**values)


def derive_features(tier: PlanTier | None, plan: Plan | None) -> frozenset[str]:
    """Tier feature list plus every plan flag set to exactly True."""
    base = TIER_FEATURES.get(tier) if tier else None
    if base is None:
        base = frozenset(DEFAULT_FEATURES)
    flags = {name for name, value in (plan.features if plan else {}).items() if value is True}
    return base | flags


class WorkspaceContextLoader:
    """Loads and caches the WorkspaceContext of a user.

    Upstream failures never propagate: the caller gets an empty context,
    which grants no workspace-gated access, and nothing is cached.
    """

    def __init__(
        self,
        unit_of_work_factory: type,
        cache: Cache,
        invalidator: CacheInvalidator,
        timeout: float = 5.0,
        ttl: float | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = unit_of_work_factory
        self._cache = cache
        self._invalidator = invalidator
        self._timeout = timeout
        self._ttl = ttl
        self._clock = clock

    async def load(self, user_id: str) -> WorkspaceContext:
        cached = self._cache.get(user_id)
        if isinstance(cached, WorkspaceContext):
            log.debug("workspace_context_cache_hit", user_id=user_id)
            return cached

        generation = self._invalidator.user_generation(user_id)
        try:
            context = await asyncio.wait_for(self._fetch(user_id), timeout=self._timeout)
        except TimeoutError:
            log.warning("workspace_context_unavailable", user_id=user_id, error="timeout")
            return WorkspaceContext.empty()
        except Exception as e:
            log.warning(
                "workspace_context_unavailable",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return WorkspaceContext.empty()

        if self._invalidator.user_generation(user_id) == generation:
            self._cache.set(user_id, context, self._ttl)
        else:
            log.debug("workspace_context_skip_stale", user_id=user_id)
        return context

    def invalidate(self, user_id: str) -> None:
        self._invalidator.context_changed(user_id)

    def invalidate_many(self, user_ids: Iterable[str]) -> None:
        self._invalidator.workspace_users_changed(user_ids)

    def invalidate_workspace(self, workspace: Workspace) -> None:
        """Drop the cached context of the owner and every member."""
        self._invalidator.workspace_users_changed(workspace.user_ids())

    async def _fetch(self, user_id: str) -> WorkspaceContext:
        async with self._uow_factory() as uow:
            workspace = await uow.workspaces.find_for_user(user_id)
            if workspace is None:
                return WorkspaceContext.empty()
            subscription = await uow.workspaces.get_subscription(workspace.id, LOADABLE_STATUSES)
            plan_id = subscription.plan_id if subscription else workspace.current_plan_id
            plan = await uow.workspaces.get_plan(plan_id) if plan_id else None

        return self.build_context(workspace, subscription, plan, self._clock())

    @staticmethod
    def build_context(
        workspace: Workspace,
        subscription: Subscription | None,
        plan: Plan | None,
        now: datetime,
    ) -> WorkspaceContext:
        trial_ends = [
            t
            for t in (workspace.trial_end_date, subscription.trial_end if subscription else None)
            if t is not None
        ]
        status = subscription.status if subscription else workspace.subscription_status
        tier = plan.tier if plan else (subscription.tier if subscription else None)
        return WorkspaceContext(
            workspace=workspace,
            subscription=subscription,
            plan=plan,
            permissions=derive_features(tier, plan),
            limits=plan_limits(plan),
            is_trial_expired=any(now > t for t in trial_ends),
            is_subscription_active=status in ACTIVE_STATUSES,
        )
