"""Permission resolution DTOs."""

from dataclasses import dataclass, field

from pharmaguard.domain.entities import Role
from pharmaguard.domain.value_objects import PermissionSource


@dataclass(frozen=True)
class PermissionDecision:
    """Allow/deny answer for one action, with its attribution."""

    action: str
    allowed: bool
    source: PermissionSource | None = None
    detail: str | None = None
    reason: str | None = None
    suggestions: tuple[str, ...] = ()
    inheritance_path: tuple[Role, ...] = ()

    @property
    def sources(self) -> dict[str, str]:
        """Source map entry for audit records, e.g. {"patient.delete": "role:Pharmacist"}."""
        if self.detail is None:
            return {}
        return {self.action: self.detail}


@dataclass(frozen=True)
class PermissionResolutionResult:
    """Every permission a user holds in a workspace and where it came from."""

    permissions: frozenset[str] = field(default_factory=frozenset)
    denied_permissions: frozenset[str] = field(default_factory=frozenset)
    sources: dict[str, PermissionSource] = field(default_factory=dict)
    details: dict[str, str] = field(default_factory=dict)
    restricted: dict[str, str] = field(default_factory=dict)

    def allows(self, action: str) -> bool:
        return action in self.permissions

    def to_dict(self) -> dict:
        return {
            "permissions": sorted(self.permissions),
            "denied_permissions": sorted(self.denied_permissions),
            "sources": {k: str(v) for k, v in sorted(self.sources.items())},
            "details": dict(sorted(self.details.items())),
            "restricted": dict(sorted(self.restricted.items())),
        }
