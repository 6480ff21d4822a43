"""User entity - the permission-relevant part of a user record."""

from dataclasses import dataclass, field

from pharmaguard.domain.exceptions import ConflictingPermissions
from pharmaguard.domain.value_objects import (
    LicenseStatus,
    SystemRole,
    UserStatus,
    WorkplaceRole,
)


@dataclass
class User:
    """User with primary roles and explicit grants/denials.

    assigned_roles is derived from active assignments and rebuilt by the
    assignment store; never edit it directly.
    """

    id: str
    system_role: SystemRole = SystemRole.PHARMACIST
    workplace_role: WorkplaceRole | None = None
    assigned_roles: list[str] = field(default_factory=list)
    direct_permissions: list[str] = field(default_factory=list)
    denied_permissions: list[str] = field(default_factory=list)
    status: UserStatus = UserStatus.ACTIVE
    license_status: LicenseStatus = LicenseStatus.NOT_REQUIRED

    def __post_init__(self) -> None:
        self.ensure_no_conflicts(self.direct_permissions, self.denied_permissions)

    @staticmethod
    def ensure_no_conflicts(direct: list[str], denied: list[str]) -> None:
        overlap = set(direct) & set(denied)
        if overlap:
            raise ConflictingPermissions(overlap)

    def set_permissions(self, direct: list[str], denied: list[str]) -> None:
        """Replace both lists, rejecting any overlap before mutating."""
        self.ensure_no_conflicts(direct, denied)
        self.direct_permissions = list(dict.fromkeys(direct))
        self.denied_permissions = list(dict.fromkeys(denied))

    @property
    def is_super_admin(self) -> bool:
        return self.system_role == SystemRole.SUPER_ADMIN
