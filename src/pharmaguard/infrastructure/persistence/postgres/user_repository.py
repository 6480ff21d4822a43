"""PostgreSQL user repository implementation."""

from psycopg import AsyncConnection

from pharmaguard.domain.entities import User
from pharmaguard.domain.value_objects import (
    LicenseStatus,
    SystemRole,
    UserStatus,
    WorkplaceRole,
)


class PostgresUserRepository:
    """Reads and writes the permission fields of app_user rows."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get_by_id(self, user_id: str) -> User | None:
        """Get user by id."""
        cur = await self._conn.execute(
            "SELECT id, system_role, workplace_role, assigned_roles, direct_permissions, "
            "denied_permissions, status, license_status FROM app_user WHERE id = %s",
            (user_id,),
        )
        r = await cur.fetchone()
        if not r:
            return None
        return User(
            id=r[0],
            system_role=SystemRole(r[1]),
            workplace_role=WorkplaceRole(r[2]) if r[2] else None,
            assigned_roles=list(r[3] or []),
            direct_permissions=list(r[4] or []),
            denied_permissions=list(r[5] or []),
            status=UserStatus(r[6]),
            license_status=LicenseStatus(r[7]),
        )

    async def update_permissions(self, user: User) -> None:
        """Update direct and denied permission lists."""
        await self._conn.execute(
            "UPDATE app_user SET direct_permissions=%s, denied_permissions=%s WHERE id=%s",
            (user.direct_permissions, user.denied_permissions, user.id),
        )

    async def set_assigned_roles(self, user_id: str, role_ids: list[str]) -> None:
        """Overwrite the denormalized assigned role list."""
        await self._conn.execute(
            "UPDATE app_user SET assigned_roles=%s WHERE id=%s",
            (role_ids, user_id),
        )
