"""Auth middleware - resolves the bearer token to the calling user."""

from dataclasses import dataclass

import falcon.asgi

PUBLIC_PATH_PREFIXES = ("/v1/health",)


@dataclass
class RequestUser:
    """User from request context."""

    user_id: str
    email: str | None = None
    username: str | None = None


class AuthMiddleware:
    """Sets req.context.user, or None when the request is unauthenticated.

    trust_user_header is for local development without Keycloak: the
    X-User-Id header is taken as the caller's id.
    """

    def __init__(self, keycloak_provider=None, trust_user_header: bool = False) -> None:
        self._keycloak = keycloak_provider
        self._trust_user_header = trust_user_header

    async def process_request(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        req.context.user = None
        if req.path.startswith(PUBLIC_PATH_PREFIXES):
            return

        auth = req.get_header("Authorization")
        if self._keycloak and auth and auth.startswith("Bearer "):
            identity = self._keycloak.decode_token(auth[7:])
            if identity:
                req.context.user = RequestUser(
                    user_id=identity.user_id,
                    email=identity.email,
                    username=identity.username,
                )
            return

        if self._trust_user_header:
            user_id = req.get_header("X-User-Id")
            if user_id:
                req.context.user = RequestUser(user_id=user_id)
