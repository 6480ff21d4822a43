"""Role assignment repository port."""

from datetime import datetime
from typing import Protocol

from pharmaguard.domain.entities import UserRoleAssignment


class AssignmentRepository(Protocol):
    """Port for user role assignment persistence."""

    async def get_by_id(self, assignment_id: str) -> UserRoleAssignment | None: ...

    async def list_by_user(
        self, user_id: str, include_inactive: bool = False
    ) -> list[UserRoleAssignment]: ...

    async def list_active_in_scope(
        self, user_id: str, workspace_id: str | None
    ) -> list[UserRoleAssignment]: ...

    async def list_expired(self, now: datetime) -> list[UserRoleAssignment]: ...

    async def create(self, assignment: UserRoleAssignment) -> UserRoleAssignment: ...

    async def update(self, assignment: UserRoleAssignment) -> None: ...
