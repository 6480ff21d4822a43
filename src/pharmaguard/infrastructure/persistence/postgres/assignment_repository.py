"""PostgreSQL user role assignment repository implementation."""

from datetime import datetime

from psycopg import AsyncConnection

from pharmaguard.domain.entities import UserRoleAssignment

_COLUMNS = (
    "id, user_id, role_id, assigned_by, assigned_at, workspace_id, is_temporary, "
    "expires_at, assignment_reason, is_active, revoked_by, revoked_at, revocation_reason"
)


def _row_to_assignment(r: tuple) -> UserRoleAssignment:
    return UserRoleAssignment(
        id=r[0],
        user_id=r[1],
        role_id=r[2],
        assigned_by=r[3],
        assigned_at=r[4],
        workspace_id=r[5],
        is_temporary=r[6],
        expires_at=r[7],
        assignment_reason=r[8],
        is_active=r[9],
        revoked_by=r[10],
        revoked_at=r[11],
        revocation_reason=r[12],
    )


class PostgresAssignmentRepository:
    """User role assignment repository implementation."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def get_by_id(self, assignment_id: str) -> UserRoleAssignment | None:
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_role_assignment WHERE id = %s",
            (assignment_id,),
        )
        r = await cur.fetchone()
        return _row_to_assignment(r) if r else None

    async def list_by_user(
        self, user_id: str, include_inactive: bool = False
    ) -> list[UserRoleAssignment]:
        """List assignments of a user, newest first."""
        active = "" if include_inactive else "AND is_active "
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_role_assignment "
            f"WHERE user_id = %s {active}ORDER BY assigned_at DESC",
            (user_id,),
        )
        rows = await cur.fetchall()
        return [_row_to_assignment(r) for r in rows]

    async def list_active_in_scope(
        self, user_id: str, workspace_id: str | None
    ) -> list[UserRoleAssignment]:
        """Active assignments with exactly this scope (None is the global scope)."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_role_assignment "
            "WHERE user_id = %s AND is_active AND workspace_id IS NOT DISTINCT FROM %s",
            (user_id, workspace_id),
        )
        rows = await cur.fetchall()
        return [_row_to_assignment(r) for r in rows]

    async def list_expired(self, now: datetime) -> list[UserRoleAssignment]:
        """Active assignments whose expiry is at or before now."""
        cur = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM user_role_assignment "
            "WHERE is_active AND expires_at IS NOT NULL AND expires_at <= %s",
            (now,),
        )
        rows = await cur.fetchall()
        return [_row_to_assignment(r) for r in rows]

    async def create(self, assignment: UserRoleAssignment) -> UserRoleAssignment:
        await self._conn.execute(
            f"INSERT INTO user_role_assignment ({_COLUMNS}) "
            "VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
            (
                assignment.id,
                assignment.user_id,
                assignment.role_id,
                assignment.assigned_by,
                assignment.assigned_at,
                assignment.workspace_id,
                assignment.is_temporary,
                assignment.expires_at,
                assignment.assignment_reason,
                assignment.is_active,
                assignment.revoked_by,
                assignment.revoked_at,
                assignment.revocation_reason,
            ),
        )
        return assignment

    async def update(self, assignment: UserRoleAssignment) -> None:
        """Persist activity and revocation fields."""
        await self._conn.execute(
            "UPDATE user_role_assignment SET is_active=%s, expires_at=%s, revoked_by=%s, "
            "revoked_at=%s, revocation_reason=%s WHERE id=%s",
            (
                assignment.is_active,
                assignment.expires_at,
                assignment.revoked_by,
                assignment.revoked_at,
                assignment.revocation_reason,
                assignment.id,
            ),
        )
