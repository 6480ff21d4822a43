"""Workspace context DTO - tenant state a permission check runs against."""

from dataclasses import dataclass, field

from pharmaguard.domain.entities import Plan, Subscription, Workspace
from pharmaguard.domain.permission_matrix import ALL_FEATURES
from pharmaguard.domain.value_objects import PlanTier, SubscriptionStatus


@dataclass(frozen=True)
class PlanLimits:
    """Numeric plan limits. None means unlimited or unknown."""

    patients: int | None = None
    users: int | None = None
    locations: int | None = None
    storage: int | None = None
    api_calls: int | None = None


@dataclass(frozen=True)
class WorkspaceContext:
    """Ephemeral per-user view of workspace, subscription and plan.

    An empty context (no workspace) grants no workspace-scoped access.
    """

    workspace: Workspace | None = None
    subscription: Subscription | None = None
    plan: Plan | None = None
    permissions: frozenset[str] = field(default_factory=frozenset)
    limits: PlanLimits = field(default_factory=PlanLimits)
    is_trial_expired: bool = False
    is_subscription_active: bool = False

    @classmethod
    def empty(cls) -> "WorkspaceContext":
        return cls()

    @property
    def workspace_id(self) -> str | None:
        return self.workspace.id if self.workspace else None

    @property
    def subscription_status(self) -> SubscriptionStatus | None:
        if self.subscription is not None:
            return self.subscription.status
        if self.workspace is not None:
            return self.workspace.subscription_status
        return None

    @property
    def plan_tier(self) -> PlanTier | None:
        if self.plan is not None:
            return self.plan.tier
        if self.subscription is not None:
            return self.subscription.tier
        return None

    @property
    def is_in_trial(self) -> bool:
        """Tenant is on a trial that has not run out."""
        return (
            self.subscription_status == SubscriptionStatus.TRIAL
            and not self.is_trial_expired
        )

    def has_feature(self, feature: str) -> bool:
        return ALL_FEATURES in self.permissions or feature in self.permissions
