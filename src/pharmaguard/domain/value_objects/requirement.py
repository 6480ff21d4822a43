"""Requirement value object - what an action needs."""

from dataclasses import dataclass

from pharmaguard.domain.value_objects.plan_tier import PlanTier
from pharmaguard.domain.value_objects.roles import SystemRole, WorkplaceRole


@dataclass(frozen=True)
class Requirement:
    """Static requirement set for one action.

    An empty tuple means "no restriction of that kind".
    """

    system_roles: tuple[SystemRole, ...] = ()
    workplace_roles: tuple[WorkplaceRole, ...] = ()
    features: tuple[str, ...] = ()
    plan_tiers: tuple[PlanTier, ...] = ()
    requires_active_subscription: bool = False
    allow_trial_access: bool = False

    @property
    def has_role_constraints(self) -> bool:
        return bool(self.system_roles or self.workplace_roles)

    @property
    def minimum_tier(self) -> PlanTier | None:
        """Lowest listed plan tier, or None when the action is not tier-gated."""
        if not self.plan_tiers:
            return None
        return min(self.plan_tiers, key=lambda t: t.rank)
