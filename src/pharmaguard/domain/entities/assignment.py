"""UserRoleAssignment entity - user holds role, optionally per workspace."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class UserRoleAssignment:
    """Assignment of a role to a user.

    workspace_id None means the role applies in every workspace.
    Revoked assignments are kept (is_active=False) for audit.
    """

    id: str
    user_id: str
    role_id: str
    assigned_by: str
    assigned_at: datetime
    workspace_id: str | None = None
    is_temporary: bool = False
    expires_at: datetime | None = None
    assignment_reason: str | None = None
    is_active: bool = True
    revoked_by: str | None = None
    revoked_at: datetime | None = None
    revocation_reason: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def is_effective(self, now: datetime) -> bool:
        """Active and not past its expiry."""
        return self.is_active and not self.is_expired(now)

    def applies_to(self, workspace_id: str | None) -> bool:
        """Global assignments apply everywhere, scoped ones only to their workspace."""
        return self.workspace_id is None or self.workspace_id == workspace_id

    def revoke(self, actor: str, at: datetime, reason: str | None = None) -> None:
        self.is_active = False
        self.revoked_by = actor
        self.revoked_at = at
        self.revocation_reason = reason
