"""Role repository port."""

from typing import Protocol

from pharmaguard.domain.entities import Role


class RoleRepository(Protocol):
    """Port for role persistence."""

    async def get_by_id(self, role_id: str) -> Role | None: ...

    async def get_by_name(self, name: str) -> Role | None: ...

    async def list_all(self, include_inactive: bool = False) -> list[Role]: ...

    async def list_children(self, parent_id: str) -> list[Role]: ...

    async def list_with_permission(self, action: str) -> list[Role]: ...

    async def create(self, role: Role) -> Role: ...

    async def update(self, role: Role) -> None: ...
