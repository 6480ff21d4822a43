"""Permission catalog and action requirement matrix - static, read-only registries."""

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from pharmaguard.domain.entities import Permission
from pharmaguard.domain.exceptions import ActionNotFound
from pharmaguard.domain.permission_matrix import PERMISSION_MATRIX
from pharmaguard.domain.value_objects import Requirement, RiskLevel

_CATEGORY_BY_RESOURCE = {
    "patient": "patient",
    "medication": "medication",
    "clinical_notes": "clinical",
    "clinical_intervention": "clinical",
    "adr": "clinical",
    "reports": "reports",
    "admin": "administration",
    "workspace": "workspace",
    "location": "workspace",
    "subscription": "subscription",
    "billing": "billing",
    "team": "user_management",
    "invitation": "user_management",
    "audit": "audit",
    "api": "integration",
    "integration": "integration",
    "backup": "system",
}

_DEPENDENCIES = {
    "patient.update": ("patient.read",),
    "patient.delete": ("patient.read", "patient.update"),
    "clinical_notes.update": ("clinical_notes.read",),
    "clinical_notes.delete": ("clinical_notes.read",),
    "medication.update": ("medication.read",),
    "medication.delete": ("medication.read",),
}

_CONFLICTS = {
    "workspace.delete": ("workspace.transfer",),
    "subscription.cancel": ("subscription.upgrade",),
}


class ActionRequirementMatrix:
    """Maps an action key to the requirements needed to perform it."""

    def __init__(self, requirements: Mapping[str, Requirement] = PERMISSION_MATRIX) -> None:
        self._requirements = MappingProxyType(dict(requirements))

    def requirements_for(self, action: str) -> Requirement:
        """Requirement for action; raises ActionNotFound for unknown actions."""
        try:
            return self._requirements[action]
        except KeyError:
            raise ActionNotFound(action) from None

    def get(self, action: str) -> Requirement | None:
        return self._requirements.get(action)

    def actions(self) -> list[str]:
        return sorted(self._requirements)

    def items(self) -> Iterable[tuple[str, Requirement]]:
        return self._requirements.items()

    def __contains__(self, action: object) -> bool:
        return action in self._requirements

    def __len__(self) -> int:
        return len(self._requirements)


def _title(part: str) -> str:
    return part.replace("_", " ").title()


def display_name_for(action: str) -> str:
    """'clinical_notes.bulk_operations' -> 'Clinical Notes - Bulk Operations'."""
    resource, _, operation = action.partition(".")
    if not operation:
        return action
    return f"{_title(resource)} - {_title(operation)}"


def risk_level_for(action: str) -> RiskLevel:
    if "delete" in action or "admin" in action:
        return RiskLevel.CRITICAL
    if "update" in action or "manage" in action:
        return RiskLevel.HIGH
    if "create" in action or "export" in action:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def _describe(action: str, requirement: Requirement) -> str:
    resource, _, operation = action.partition(".")
    base = f"Permission to {operation} {resource.replace('_', ' ')}"
    if requirement.minimum_tier is not None:
        return f"{base} (requires {requirement.minimum_tier}+ plan)"
    return base


class PermissionCatalog:
    """Registry of all known permission actions and their metadata."""

    def __init__(self, permissions: Iterable[Permission]) -> None:
        self._by_action = MappingProxyType({p.action: p for p in permissions})

    @classmethod
    def from_matrix(cls, matrix: ActionRequirementMatrix) -> "PermissionCatalog":
        """Seed one catalog entry per matrix action."""
        permissions = []
        for action, requirement in matrix.items():
            resource = action.partition(".")[0]
            permissions.append(
                Permission(
                    action=action,
                    display_name=display_name_for(action),
                    category=_CATEGORY_BY_RESOURCE.get(resource, "system"),
                    risk_level=risk_level_for(action),
                    required_tier=requirement.minimum_tier,
                    description=_describe(action, requirement),
                    required_features=requirement.features,
                    dependencies=_DEPENDENCIES.get(action, ()),
                    conflicts=_CONFLICTS.get(action, ()),
                )
            )
        return cls(permissions)

    def get(self, action: str) -> Permission | None:
        return self._by_action.get(action)

    def by_category(self, category: str | None = None) -> list[Permission]:
        items = sorted(self._by_action.values(), key=lambda p: p.action)
        if category is None:
            return items
        return [p for p in items if p.category == category]

    def unknown(self, actions: Iterable[str]) -> list[str]:
        """Actions not in the catalog, in input order."""
        return [a for a in dict.fromkeys(actions) if a not in self._by_action]

    def __contains__(self, action: object) -> bool:
        return action in self._by_action

    def __iter__(self) -> Iterator[Permission]:
        return iter(self.by_category())

    def __len__(self) -> int:
        return len(self._by_action)
