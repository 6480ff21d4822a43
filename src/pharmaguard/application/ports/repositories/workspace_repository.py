"""Workspace, subscription and plan repository port."""

from collections.abc import Collection
from typing import Protocol

from pharmaguard.domain.entities import Plan, Subscription, Workspace
from pharmaguard.domain.value_objects import SubscriptionStatus


class WorkspaceRepository(Protocol):
    """Port for tenant data read by the workspace context loader."""

    async def get_by_id(self, workspace_id: str) -> Workspace | None: ...

    async def find_for_user(self, user_id: str) -> Workspace | None: ...

    async def get_subscription(
        self, workspace_id: str, statuses: Collection[SubscriptionStatus]
    ) -> Subscription | None: ...

    async def get_plan(self, plan_id: str) -> Plan | None: ...
