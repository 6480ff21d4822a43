"""CORS middleware for the permission API."""

import falcon.asgi

ALLOWED_HEADERS = "Authorization, Content-Type, X-User-Id"


class CORSMiddleware:
    """Echoes allowed origins and answers OPTIONS preflight.

    Origins not in the list get no Access-Control-Allow-Origin header, so the
    browser blocks them.
    """

    def __init__(self, origins: list[str], max_age: int = 86400) -> None:
        self._origins = frozenset(origins)
        self._max_age = str(max_age)

    def _set_cors_headers(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        resp.append_header("Vary", "Origin")
        origin = req.get_header("Origin")
        if not origin or origin not in self._origins:
            return
        resp.set_header("Access-Control-Allow-Origin", origin)
        resp.set_header("Access-Control-Allow-Methods", "GET, POST, PUT, PATCH, DELETE, OPTIONS")
        resp.set_header("Access-Control-Allow-Headers", ALLOWED_HEADERS)
        resp.set_header("Access-Control-Max-Age", self._max_age)

    async def process_request(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        if req.method == "OPTIONS":
            self._set_cors_headers(req, resp)
            resp.status = falcon.HTTP_204
            resp.complete = True

    async def process_response(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, resource, req_succeeded
    ) -> None:
        if req.method != "OPTIONS":
            self._set_cors_headers(req, resp)
