"""JSON shapes for API responses."""

from datetime import datetime

from pharmaguard.application.dto.bulk import UserUpdateResult
from pharmaguard.application.dto.resolution import PermissionDecision
from pharmaguard.domain.entities import Role, User, UserRoleAssignment


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def parse_datetime(value: str | None) -> datetime | None:
    """ISO 8601 string to datetime; naive values are rejected."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        raise ValueError(f"Datetime must include a timezone: {value}")
    return parsed


def role_to_dict(role: Role) -> dict:
    return {
        "id": role.id,
        "name": role.name,
        "display_name": role.display_name,
        "category": role.category,
        "permissions": list(role.permissions),
        "parent_id": role.parent_id,
        "is_active": role.is_active,
        "hierarchy_level": role.hierarchy_level,
        "description": role.description,
        "is_system_role": role.is_system_role,
        "created_at": _iso(role.created_at),
        "updated_at": _iso(role.updated_at),
    }


def assignment_to_dict(assignment: UserRoleAssignment) -> dict:
    return {
        "id": assignment.id,
        "user_id": assignment.user_id,
        "role_id": assignment.role_id,
        "workspace_id": assignment.workspace_id,
        "is_temporary": assignment.is_temporary,
        "expires_at": _iso(assignment.expires_at),
        "assigned_by": assignment.assigned_by,
        "assigned_at": _iso(assignment.assigned_at),
        "assignment_reason": assignment.assignment_reason,
        "is_active": assignment.is_active,
        "revoked_by": assignment.revoked_by,
        "revoked_at": _iso(assignment.revoked_at),
        "revocation_reason": assignment.revocation_reason,
    }


def decision_to_dict(decision: PermissionDecision) -> dict:
    body = {
        "action": decision.action,
        "allowed": decision.allowed,
        "source": str(decision.source) if decision.source else None,
        "detail": decision.detail,
        "reason": decision.reason,
    }
    if decision.suggestions:
        body["suggestions"] = list(decision.suggestions)
    if decision.inheritance_path:
        body["inheritance_path"] = [r.name for r in decision.inheritance_path]
    return body


def user_permissions_to_dict(user: User) -> dict:
    return {
        "user_id": user.id,
        "direct_permissions": list(user.direct_permissions),
        "denied_permissions": list(user.denied_permissions),
    }


def update_result_to_dict(result: UserUpdateResult) -> dict:
    return {
        "user_id": result.user_id,
        "success": result.success,
        "errors": result.errors,
        "warnings": result.warnings,
        "changes": result.changes,
    }
