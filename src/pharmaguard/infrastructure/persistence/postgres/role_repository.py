"""PostgreSQL role repository implementation."""

from psycopg import AsyncConnection

from pharmaguard.domain.entities import Role

_COLUMNS = (
    "id, name, display_name, category, permissions, parent_id, is_active, "
    "hierarchy_level, description, is_system_role, created_by, created_at, updated_at"
)


def _row_to_role(r: tuple) -> Role:
    return Role(
        id=r[0],
        name=r[1],
        display_name=r[2],
        category=r[3],
        permissions=list(r[4] or []),
        parent_id=r[5],
        is_active=r[6],
        hierarchy_level=r[7],
        description=r[8] or "",
        is_system_role=r[9],
        created_by=r[10],
        created_at=r[11],
        updated_at=r[12],
    )


class PostgresRoleRepository:
    """Role repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get_by_id(self, role_id: str) -> Role | None:
        """Get role by id."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM role WHERE id = %s",
            (role_id,),
        )
        r = await cur.fetchone()
        return _row_to_role(r) if r else None

    async def get_by_name(self, name: str) -> Role | None:
        """Get role by name."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM role WHERE name = %s",
            (name,),
        )
        r = await cur.fetchone()
        return _row_to_role(r) if r else None

    async def list_all(self, include_inactive: bool = False) -> list[Role]:
        """List roles ordered by hierarchy level and name."""
        where = "" if include_inactive else "WHERE is_active "
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM role {where}ORDER BY hierarchy_level, name"
        )
        rows = await cur.fetchall()
        return [_row_to_role(r) for r in rows]

    async def list_children(self, parent_id: str) -> list[Role]:
        """List direct children of a role, active or not."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM role WHERE parent_id = %s ORDER BY name",
            (parent_id,),
        )
        rows = await cur.fetchall()
        return [_row_to_role(r) for r in rows]

    async def list_with_permission(self, action: str) -> list[Role]:
        """List roles that declare action themselves."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM role WHERE %s = ANY(permissions) ORDER BY name",
            (action,),
        )
        rows = await cur.fetchall()
        return [_row_to_role(r) for r in rows]

    async def create(self, role: Role) -> Role:
        """Create role."""
        await self._conn.execute(
            f"INSERT INTO role ({_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
            (
                role.id,
                role.name,
                role.display_name,
                role.category,
                role.permissions,
                role.parent_id,
                role.is_active,
                role.hierarchy_level,
                role.description,
                role.is_system_role,
                role.created_by,
                role.created_at,
                role.updated_at,
            ),
        )
        return role

    async def update(self, role: Role) -> None:
        """Update role."""
        await self._conn.execute(
            "UPDATE role SET display_name=%s, category=%s, permissions=%s, parent_id=%s, "
            "is_active=%s, hierarchy_level=%s, description=%s, updated_at=%s WHERE id=%s",
            (
                role.display_name,
                role.category,
                role.permissions,
                role.parent_id,
                role.is_active,
                role.hierarchy_level,
                role.description,
                role.updated_at,
                role.id,
            ),
        )
