"""Permission entity - catalog entry for one action."""

from dataclasses import dataclass

from pharmaguard.domain.value_objects import PlanTier, RiskLevel


@dataclass(frozen=True)
class Permission:
    """Permission - immutable reference data seeded from the requirement matrix."""

    action: str
    display_name: str
    category: str
    risk_level: RiskLevel
    required_tier: PlanTier | None = None
    description: str = ""
    required_features: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    conflicts: tuple[str, ...] = ()

    @property
    def resource(self) -> str:
        return self.action.split(".", 1)[0]
