"""Periodic sweeper - evicts stale cache entries and expires assignments."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence

import structlog

from pharmaguard.application.ports import Cache

log = structlog.get_logger(__name__)


class PeriodicSweeper:
    """Background asyncio task owned by the host process.

    Started and stopped through the ASGI lifespan; each tick sweeps every
    registered cache and then runs the extra jobs (e.g. assignment expiry).
    """

    def __init__(
        self,
        caches: Sequence[Cache],
        interval: float = 600.0,
        jobs: Sequence[Callable[[], Awaitable[int]]] = (),
    ) -> None:
        self._caches = list(caches)
        self._interval = interval
        self._jobs = list(jobs)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="pharmaguard-cache-sweeper")
        log.info("sweeper_started", interval=self._interval, caches=len(self._caches))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        log.info("sweeper_stopped")

    async def run_once(self) -> int:
        """One sweep pass; returns total evicted entries plus job results."""
        total = 0
        for cache in self._caches:
            try:
                total += cache.sweep()
            except Exception:
                log.exception("cache_sweep_failed", cache=getattr(cache, "name", repr(cache)))
        for job in self._jobs:
            try:
                total += await job()
            except Exception:
                log.exception("sweeper_job_failed", job=getattr(job, "__qualname__", repr(job)))
        return total

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.run_once()
            except Exception:
                log.exception("sweeper_tick_failed")
