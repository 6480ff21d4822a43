"""PostgreSQL workspace, subscription and plan repository implementation."""

from collections.abc import Collection

import psycopg
from psycopg import AsyncConnection

from pharmaguard.domain.entities import Plan, Subscription, Workspace
from pharmaguard.domain.exceptions import UpstreamUnavailable
from pharmaguard.domain.value_objects import PlanTier, SubscriptionStatus

_WORKSPACE_COLUMNS = (
    "w.id, w.name, w.owner_id, w.current_plan_id, w.subscription_status, w.trial_end_date, "
    "COALESCE(ARRAY(SELECT m.user_id FROM workspace_member m "
    "WHERE m.workspace_id = w.id ORDER BY m.user_id), '{}')"
)


def _row_to_workspace(r: tuple) -> Workspace:
    return Workspace(
        id=r[0],
        name=r[1],
        owner_id=r[2],
        current_plan_id=r[3],
        subscription_status=SubscriptionStatus(r[4]) if r[4] else None,
        trial_end_date=r[5],
        member_ids=list(r[6] or []),
    )


class PostgresWorkspaceRepository:
    """Tenant data repository. Connection failures surface as UpstreamUnavailable."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def _fetchone(self, query: str, params: tuple) -> tuple | None:
        try:
            cur = await self._conn.execute(query, params)
            return await cur.fetchone()
        except psycopg.OperationalError as e:
            raise UpstreamUnavailable(f"Workspace store unavailable: {e}") from e

    async def get_by_id(self, workspace_id: str) -> Workspace | None:
        r = await self._fetchone(
            f"SELECT {_WORKSPACE_COLUMNS} FROM workspace w WHERE w.id = %s",
            (workspace_id,),
        )
        return _row_to_workspace(r) if r else None

    async def find_for_user(self, user_id: str) -> Workspace | None:
        """Workspace the user owns or belongs to. Owned workspaces win."""
        r = await self._fetchone(
            f"SELECT {_WORKSPACE_COLUMNS} FROM workspace w "
            "WHERE w.owner_id = %s OR EXISTS ("
            "SELECT 1 FROM workspace_member m WHERE m.workspace_id = w.id AND m.user_id = %s) "
            "ORDER BY (w.owner_id = %s) DESC, w.id LIMIT 1",
            (user_id, user_id, user_id),
        )
        return _row_to_workspace(r) if r else None

    async def get_subscription(
        self, workspace_id: str, statuses: Collection[SubscriptionStatus]
    ) -> Subscription | None:
        """Most recent subscription of the workspace with one of statuses."""
        r = await self._fetchone(
            "SELECT id, workspace_id, plan_id, status, tier, trial_end, start_date, end_date "
            "FROM subscription WHERE workspace_id = %s AND status = ANY(%s) "
            "ORDER BY start_date DESC NULLS LAST LIMIT 1",
            (workspace_id, [str(s) for s in statuses]),
        )
        if not r:
            return None
        return Subscription(
            id=r[0],
            workspace_id=r[1],
            plan_id=r[2],
            status=SubscriptionStatus(r[3]),
            tier=PlanTier(r[4]) if r[4] else None,
            trial_end=r[5],
            start_date=r[6],
            end_date=r[7],
        )

    async def get_plan(self, plan_id: str) -> Plan | None:
        r = await self._fetchone(
            "SELECT id, name, tier, features, limits FROM plan WHERE id = %s",
            (plan_id,),
        )
        if not r:
            return None
        return Plan(
            id=r[0],
            name=r[1],
            tier=PlanTier(r[2]),
            features=dict(r[3] or {}),
            limits=dict(r[4] or {}),
        )
