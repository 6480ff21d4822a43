"""Domain value objects."""

from pharmaguard.domain.value_objects.permission_source import PermissionSource
from pharmaguard.domain.value_objects.plan_tier import PlanTier
from pharmaguard.domain.value_objects.requirement import Requirement
from pharmaguard.domain.value_objects.risk_level import RiskLevel
from pharmaguard.domain.value_objects.roles import SystemRole, WorkplaceRole
from pharmaguard.domain.value_objects.statuses import (
    LicenseStatus,
    SubscriptionStatus,
    UserStatus,
)

__all__ = [
    "LicenseStatus",
    "PermissionSource",
    "PlanTier",
    "Requirement",
    "RiskLevel",
    "SubscriptionStatus",
    "SystemRole",
    "UserStatus",
    "WorkplaceRole",
]
