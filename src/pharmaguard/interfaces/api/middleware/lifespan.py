"""Lifespan middleware - opens the pool and runs the cache sweeper."""

from typing import Any

import structlog
from psycopg_pool import AsyncConnectionPool

from pharmaguard.infrastructure.cache.sweeper import PeriodicSweeper

log = structlog.get_logger(__name__)


class LifespanMiddleware:
    """Opens the connection pool and starts the sweeper on startup; reverses on shutdown."""

    def __init__(self, pool: AsyncConnectionPool | None, sweeper: PeriodicSweeper) -> None:
        self._pool = pool
        self._sweeper = sweeper

    async def process_startup(self, scope: dict[str, Any], event: dict[str, Any]) -> None:
        if self._pool is not None:
            await self._pool.open()
        self._sweeper.start()
        log.info("app_started")

    async def process_shutdown(self, scope: dict[str, Any], event: dict[str, Any]) -> None:
        await self._sweeper.stop()
        if self._pool is not None:
            await self._pool.close()
        log.info("app_stopped")
