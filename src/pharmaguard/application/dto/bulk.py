"""Bulk operation DTOs."""

from dataclasses import dataclass, field

from pharmaguard.domain.entities import UserRoleAssignment


@dataclass
class BulkAssignmentResult:
    """Outcome of one user's part of a bulk assign/revoke."""

    user_id: str
    success: bool
    assignment: UserRoleAssignment | None = None
    error: str | None = None


@dataclass
class UserUpdateInput:
    """One entry of a bulk user update.

    None leaves that part of the user unchanged.
    """

    user_id: str
    role_ids: list[str] | None = None
    direct_permissions: list[str] | None = None
    denied_permissions: list[str] | None = None
    workspace_id: str | None = None


@dataclass
class UserUpdateResult:
    """Validation and execution outcome for one bulk user update."""

    user_id: str
    success: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    changes: dict = field(default_factory=dict)
