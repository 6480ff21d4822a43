"""Pytest fixtures for PharmaGuard tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Collection
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

import pytest

from pharmaguard.application.services.cache_invalidation import CacheInvalidator
from pharmaguard.application.services.permission_catalog import (
    ActionRequirementMatrix,
    PermissionCatalog,
)
from pharmaguard.application.services.permission_resolver import DynamicPermissionResolver
from pharmaguard.application.services.role_assignment import RoleAssignmentStore
from pharmaguard.application.services.role_hierarchy import RoleHierarchyStore
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.domain.entities import (
    Plan,
    Role,
    Subscription,
    User,
    UserRoleAssignment,
    Workspace,
)
from pharmaguard.domain.exceptions import UpstreamUnavailable
from pharmaguard.domain.value_objects import PlanTier, SubscriptionStatus
from pharmaguard.infrastructure.cache.memory_cache import MemoryCache

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class FakeClock:
    """Settable wall clock for expiry tests."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Settable monotonic clock for cache TTL tests."""

    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


class Pause:
    """One-shot suspension point for interleaving tests.

    Once armed, the next repository read takes its snapshot, sets
    `reached` and waits for `release` before returning it.
    """

    def __init__(self) -> None:
        self.armed = False
        self.reached = asyncio.Event()
        self.release = asyncio.Event()

    def arm(self) -> None:
        self.armed = True

    async def __call__(self) -> None:
        if self.armed:
            self.armed = False
            self.reached.set()
            await self.release.wait()


# --- Fake repositories ---


class FakeRoleRepository:
    """In-memory role repository."""

    def __init__(self) -> None:
        self._by_id: dict[str, Role] = {}
        self.pause = Pause()

    async def get_by_id(self, role_id: str) -> Role | None:
        role = self._by_id.get(role_id)
        await self.pause()
        return role

    async def get_by_name(self, name: str) -> Role | None:
        return next((r for r in self._by_id.values() if r.name == name), None)

    async def list_all(self, include_inactive: bool = False) -> list[Role]:
        roles = [r for r in self._by_id.values() if include_inactive or r.is_active]
        return sorted(roles, key=lambda r: (r.hierarchy_level, r.name))

    async def list_children(self, parent_id: str) -> list[Role]:
        return sorted(
            (r for r in self._by_id.values() if r.parent_id == parent_id), key=lambda r: r.name
        )

    async def list_with_permission(self, action: str) -> list[Role]:
        return [r for r in self._by_id.values() if action in r.permissions]

    async def create(self, role: Role) -> Role:
        self._by_id[role.id] = role
        return role

    async def update(self, role: Role) -> None:
        self._by_id[role.id] = role

    def add_role(self, role: Role) -> Role:
        """Helper to add role for tests."""
        self._by_id[role.id] = role
        return role


class FakeAssignmentRepository:
    """In-memory assignment repository."""

    def __init__(self) -> None:
        self._by_id: dict[str, UserRoleAssignment] = {}
        self.pause = Pause()

    async def get_by_id(self, assignment_id: str) -> UserRoleAssignment | None:
        return self._by_id.get(assignment_id)

    async def list_by_user(
        self, user_id: str, include_inactive: bool = False
    ) -> list[UserRoleAssignment]:
        found = [
            a
            for a in self._by_id.values()
            if a.user_id == user_id and (include_inactive or a.is_active)
        ]
        await self.pause()
        return found

    async def list_active_in_scope(
        self, user_id: str, workspace_id: str | None
    ) -> list[UserRoleAssignment]:
        return [
            a
            for a in self._by_id.values()
            if a.user_id == user_id and a.is_active and a.workspace_id == workspace_id
        ]

    async def list_expired(self, now: datetime) -> list[UserRoleAssignment]:
        return [a for a in self._by_id.values() if a.is_active and a.is_expired(now)]

    async def create(self, assignment: UserRoleAssignment) -> UserRoleAssignment:
        self._by_id[assignment.id] = assignment
        return assignment

    async def update(self, assignment: UserRoleAssignment) -> None:
        self._by_id[assignment.id] = assignment

    def all(self) -> list[UserRoleAssignment]:
        return list(self._by_id.values())


class FakeUserRepository:
    """In-memory user repository."""

    def __init__(self) -> None:
        self._by_id: dict[str, User] = {}

    async def get_by_id(self, user_id: str) -> User | None:
        return self._by_id.get(user_id)

    async def update_permissions(self, user: User) -> None:
        self._by_id[user.id] = user

    async def set_assigned_roles(self, user_id: str, role_ids: list[str]) -> None:
        user = self._by_id.get(user_id)
        if user:
            user.assigned_roles = list(role_ids)

    def add_user(self, user: User) -> User:
        """Helper to add user for tests."""
        self._by_id[user.id] = user
        return user


class FakeWorkspaceRepository:
    """In-memory tenant data with switchable failure and latency."""

    def __init__(self) -> None:
        self._workspaces: dict[str, Workspace] = {}
        self._subscriptions: list[Subscription] = []
        self._plans: dict[str, Plan] = {}
        self.fail = False
        self.delay = 0.0
        self.lookups = 0
        self.pause = Pause()

    async def get_by_id(self, workspace_id: str) -> Workspace | None:
        return self._workspaces.get(workspace_id)

    async def find_for_user(self, user_id: str) -> Workspace | None:
        self.lookups += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise UpstreamUnavailable("workspace store down")
        found = next((w for w in self._workspaces.values() if user_id in w.user_ids()), None)
        await self.pause()
        return found

    async def get_subscription(
        self, workspace_id: str, statuses: Collection[SubscriptionStatus]
    ) -> Subscription | None:
        for subscription in self._subscriptions:
            if subscription.workspace_id == workspace_id and subscription.status in statuses:
                return subscription
        return None

    async def get_plan(self, plan_id: str) -> Plan | None:
        return self._plans.get(plan_id)

    def add_workspace(self, workspace: Workspace) -> Workspace:
        self._workspaces[workspace.id] = workspace
        return workspace

    def add_subscription(self, subscription: Subscription) -> Subscription:
        self._subscriptions.append(subscription)
        return subscription

    def add_plan(self, plan: Plan) -> Plan:
        self._plans[plan.id] = plan
        return plan


# --- Fake UnitOfWork ---


class FakeUnitOfWork:
    """In-memory Unit of Work with fake repositories."""

    def __init__(self) -> None:
        self.roles = FakeRoleRepository()
        self.assignments = FakeAssignmentRepository()
        self.users = FakeUserRepository()
        self.workspaces = FakeWorkspaceRepository()
        self.commits = 0

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        pass


def shared_factory(uow: FakeUnitOfWork):
    """Factory that yields the same UoW on every call, committing on success."""

    @asynccontextmanager
    async def _factory() -> AsyncIterator[FakeUnitOfWork]:
        yield uow
        await uow.commit()

    return _factory


# --- Builders ---


def make_role(
    role_id: str,
    permissions: list[str] | None = None,
    parent_id: str | None = None,
    level: int = 0,
    is_active: bool = True,
    display_name: str | None = None,
    is_system_role: bool = False,
) -> Role:
    return Role(
        id=role_id,
        name=role_id,
        display_name=display_name or role_id.replace("_", " ").title(),
        permissions=list(permissions or []),
        parent_id=parent_id,
        hierarchy_level=level,
        is_active=is_active,
        is_system_role=is_system_role,
    )


def add_tenant(
    uow: FakeUnitOfWork,
    owner_id: str,
    *,
    workspace_id: str = "ws-1",
    tier: PlanTier = PlanTier.BASIC,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    member_ids: list[str] | None = None,
    features: dict | None = None,
    trial_end: datetime | None = None,
) -> Workspace:
    """Workspace with an owner, members, a plan of tier and a subscription in status."""
    plan = uow.workspaces.add_plan(
        Plan(
            id=f"plan-{tier}",
            name=str(tier).title(),
            tier=tier,
            features=dict(features or {}),
            limits={"patientLimit": 500, "teamSize": 5},
        )
    )
    workspace = uow.workspaces.add_workspace(
        Workspace(
            id=workspace_id,
            name="Main Street Pharmacy",
            owner_id=owner_id,
            member_ids=list(member_ids or []),
            current_plan_id=plan.id,
            subscription_status=status,
        )
    )
    uow.workspaces.add_subscription(
        Subscription(
            id=f"sub-{workspace_id}",
            workspace_id=workspace_id,
            plan_id=plan.id,
            status=status,
            tier=tier,
            trial_end=trial_end,
        )
    )
    return workspace


class Engine:
    """The engine's services wired over one fake UoW."""

    def __init__(self, uow: FakeUnitOfWork, clock: FakeClock) -> None:
        self.uow = uow
        self.clock = clock
        self.uow_factory = shared_factory(uow)
        self.matrix = ActionRequirementMatrix()
        self.catalog = PermissionCatalog.from_matrix(self.matrix)
        self.role_cache = MemoryCache("roles")
        self.decision_cache = MemoryCache("decisions")
        self.context_cache = MemoryCache("workspace_contexts")
        self.invalidator = CacheInvalidator(
            self.role_cache, self.decision_cache, self.context_cache
        )
        self.roles = RoleHierarchyStore(
            self.uow_factory, self.catalog, self.role_cache, self.invalidator
        )
        self.assignments = RoleAssignmentStore(self.uow_factory, self.invalidator, clock=clock)
        self.context_loader = WorkspaceContextLoader(
            self.uow_factory, self.context_cache, self.invalidator, timeout=1.0, clock=clock
        )
        self.resolver = DynamicPermissionResolver(
            self.matrix,
            self.roles,
            self.assignments,
            self.decision_cache,
            self.invalidator,
            clock=clock,
        )


# --- Fixtures ---


@pytest.fixture
def fake_uow() -> FakeUnitOfWork:
    """Fresh in-memory UnitOfWork for each test."""
    return FakeUnitOfWork()


@pytest.fixture
def uow_factory(fake_uow: FakeUnitOfWork):
    """Factory returning async context manager over the shared FakeUnitOfWork."""
    return shared_factory(fake_uow)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def engine(fake_uow: FakeUnitOfWork, clock: FakeClock) -> Engine:
    return Engine(fake_uow, clock)


@pytest.fixture
def mock_permission_checker():
    """AsyncMock for PermissionChecker - returns True by default."""
    from unittest.mock import AsyncMock

    mock = AsyncMock()
    mock.check.return_value = True
    return mock
