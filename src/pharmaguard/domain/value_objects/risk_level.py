"""Permission risk levels."""

from enum import StrEnum


class RiskLevel(StrEnum):
    """How sensitive an action is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"
