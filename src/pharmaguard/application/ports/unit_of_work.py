"""Unit of Work port - transactional boundary."""

from collections.abc import AsyncIterator
from typing import Protocol

from pharmaguard.application.ports.repositories.assignment_repository import (
    AssignmentRepository,
)
from pharmaguard.application.ports.repositories.role_repository import RoleRepository
from pharmaguard.application.ports.repositories.user_repository import UserRepository
from pharmaguard.application.ports.repositories.workspace_repository import (
    WorkspaceRepository,
)


class UnitOfWork(Protocol):
    """Unit of Work - manages transaction and repository access."""

    @property
    def roles(self) -> RoleRepository: ...

    @property
    def assignments(self) -> AssignmentRepository: ...

    @property
    def users(self) -> UserRepository: ...

    @property
    def workspaces(self) -> WorkspaceRepository: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class UnitOfWorkFactory(Protocol):
    """Factory for creating UnitOfWork instances."""

    async def __call__(self) -> AsyncIterator[UnitOfWork]: ...
