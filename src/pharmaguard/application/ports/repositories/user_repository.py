"""User repository port."""

from typing import Protocol

from pharmaguard.domain.entities import User


class UserRepository(Protocol):
    """Port for the permission fields of user records."""

    async def get_by_id(self, user_id: str) -> User | None: ...

    async def update_permissions(self, user: User) -> None: ...

    async def set_assigned_roles(self, user_id: str, role_ids: list[str]) -> None: ...
