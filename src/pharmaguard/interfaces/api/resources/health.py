"""Health check endpoints."""

from collections.abc import Sequence

import falcon.asgi

from pharmaguard.application.ports import Cache


class HealthResource:
    """Health and readiness endpoints."""

    def __init__(self, caches: Sequence[Cache] = ()) -> None:
        self._caches = list(caches)

    async def on_get(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        """GET /v1/health - liveness."""
        resp.media = {"status": "ok"}
        resp.status = falcon.HTTP_200

    async def on_get_ready(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        """GET /v1/health/ready - readiness with cache statistics."""
        resp.media = {
            "status": "ready",
            "caches": [cache.stats() for cache in self._caches],
        }
        resp.status = falcon.HTTP_200
