"""Subscription plan tiers."""

from enum import StrEnum


class PlanTier(StrEnum):
    """Plan tiers, declared lowest first."""

    FREE_TRIAL = "free_trial"
    BASIC = "basic"
    PRO = "pro"
    PHARMILY = "pharmily"
    NETWORK = "network"
    ENTERPRISE = "enterprise"

    @property
    def rank(self) -> int:
        """Position on the tier ordering (free_trial == 0)."""
        return list(PlanTier).index(self)

    def at_least(self, other: "PlanTier") -> bool:
        return self.rank >= other.rank
