"""PostgreSQL Unit of Work implementation."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import psycopg
from psycopg_pool import AsyncConnectionPool

from pharmaguard.domain.exceptions import UpstreamUnavailable
from pharmaguard.infrastructure.persistence.postgres.assignment_repository import (
    PostgresAssignmentRepository,
)
from pharmaguard.infrastructure.persistence.postgres.role_repository import (
    PostgresRoleRepository,
)
from pharmaguard.infrastructure.persistence.postgres.user_repository import (
    PostgresUserRepository,
)
from pharmaguard.infrastructure.persistence.postgres.workspace_repository import (
    PostgresWorkspaceRepository,
)


class PostgresUnitOfWork:
    """PostgreSQL Unit of Work - one connection, one transaction."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool
        self._conn: object | None = None
        self._conn_cm: object | None = None

    async def __aenter__(self) -> "PostgresUnitOfWork":
        self._conn_cm = self._pool.connection()
        try:
            self._conn = await self._conn_cm.__aenter__()
        except psycopg.OperationalError as e:
            # PoolTimeout is an OperationalError too
            raise UpstreamUnavailable(f"Database unavailable: {e}") from e
        self._roles = PostgresRoleRepository(self._conn)
        self._assignments = PostgresAssignmentRepository(self._conn)
        self._users = PostgresUserRepository(self._conn)
        self._workspaces = PostgresWorkspaceRepository(self._conn)
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        if exc_type and self._conn:
            await self._conn.rollback()
        if self._conn_cm:
            await self._conn_cm.__aexit__(exc_type, exc_val, exc_tb)

    @property
    def roles(self) -> PostgresRoleRepository:
        return self._roles

    @property
    def assignments(self) -> PostgresAssignmentRepository:
        return self._assignments

    @property
    def users(self) -> PostgresUserRepository:
        return self._users

    @property
    def workspaces(self) -> PostgresWorkspaceRepository:
        return self._workspaces

    async def commit(self) -> None:
        if self._conn:
            await self._conn.commit()

    async def rollback(self) -> None:
        if self._conn:
            await self._conn.rollback()


def create_uow_factory(pool: AsyncConnectionPool) -> object:
    """Create UnitOfWork factory (async context manager)."""

    @asynccontextmanager
    async def factory() -> AsyncIterator[PostgresUnitOfWork]:
        uow = PostgresUnitOfWork(pool)
        async with uow:
            try:
                yield uow
                await uow.commit()
            except BaseException:
                await uow.rollback()
                raise

    return factory
