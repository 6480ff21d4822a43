"""Domain exceptions."""


class PharmaGuardError(Exception):
    """Base exception for PharmaGuard."""

    pass


class PermissionDenied(PharmaGuardError):
    """User does not have permission for the requested action."""

    pass


class NotFound(PharmaGuardError):
    """Requested resource was not found."""

    pass


class ActionNotFound(NotFound):
    """Action is not registered in the requirement matrix."""

    def __init__(self, action: str) -> None:
        super().__init__("Action", action)
        self.action = action


class RoleNotFound(NotFound):
    """Role does not exist or is inactive."""

    def __init__(self, role_id: str) -> None:
        super().__init__("Role", role_id)
        self.role_id = role_id


class AssignmentNotFound(NotFound):
    """No active role assignment matches."""

    pass


class UserNotFound(NotFound):
    """User does not exist."""

    def __init__(self, user_id: str) -> None:
        super().__init__("User", user_id)
        self.user_id = user_id


class WorkspaceNotFound(NotFound):
    """Workspace does not exist."""

    pass


class ValidationError(PharmaGuardError):
    """Validation failed for input data."""

    pass


class InvalidExpiry(ValidationError):
    """Temporary assignment without a future expiry."""

    pass


class DuplicateAssignment(ValidationError):
    """An identical active assignment already exists."""

    pass


class ConflictingPermissions(ValidationError):
    """Same action is both granted and denied for one user."""

    def __init__(self, actions) -> None:
        self.actions = sorted(actions)
        super().__init__(
            "Permissions cannot be both granted and denied: " + ", ".join(self.actions)
        )


class DuplicateRole(ValidationError):
    """Role with same name already exists."""

    pass


class UnknownPermission(ValidationError):
    """Permission action is not in the catalog."""

    def __init__(self, actions) -> None:
        self.actions = list(actions)
        super().__init__("Invalid permissions: " + ", ".join(self.actions))


class InvalidParent(ValidationError):
    """Parent role cannot be used."""

    pass


class HierarchyTooDeep(ValidationError):
    """Role hierarchy would exceed the maximum depth."""

    pass


class BulkLimitExceeded(ValidationError):
    """Too many users in a single bulk request."""

    pass


class CyclicHierarchy(PharmaGuardError):
    """Role parent chain contains a cycle."""

    def __init__(self, role_id: str, chain: list[str] | None = None) -> None:
        self.role_id = role_id
        self.chain = list(chain or [])
        path = " -> ".join([*self.chain, role_id]) if self.chain else role_id
        super().__init__(f"Cyclic role hierarchy detected: {path}")


class UpstreamUnavailable(PharmaGuardError):
    """Workspace or subscription data store is unreachable."""

    pass


class PermissionResolutionError(PharmaGuardError):
    """Permission could not be resolved because a store failed.

    Distinct from a denial: callers map it to a server error, not 403.
    """

    def __init__(self, user_id: str, action: str | None, message: str) -> None:
        self.user_id = user_id
        self.action = action
        super().__init__(message)
