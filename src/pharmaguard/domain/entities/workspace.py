"""Tenant entities - workspace, subscription and plan."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pharmaguard.domain.value_objects import PlanTier, SubscriptionStatus


@dataclass
class Plan:
    """Billing plan with feature flags and numeric limits."""

    id: str
    name: str
    tier: PlanTier
    features: dict[str, Any] = field(default_factory=dict)
    limits: dict[str, int | None] = field(default_factory=dict)


@dataclass
class Subscription:
    """Subscription of a workspace to a plan."""

    id: str
    workspace_id: str
    plan_id: str
    status: SubscriptionStatus
    tier: PlanTier | None = None
    trial_end: datetime | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


@dataclass
class Workspace:
    """Pharmacy workspace (tenant)."""

    id: str
    name: str
    owner_id: str
    member_ids: list[str] = field(default_factory=list)
    current_plan_id: str | None = None
    subscription_status: SubscriptionStatus | None = None
    trial_end_date: datetime | None = None

    def user_ids(self) -> list[str]:
        """Owner first, then members."""
        return list(dict.fromkeys([self.owner_id, *self.member_ids]))
