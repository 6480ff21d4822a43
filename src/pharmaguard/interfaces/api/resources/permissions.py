"""Permission check and user permission API resources."""

import falcon.asgi

from pharmaguard.application.use_cases.permission.check_permission import CheckPermissionUseCase
from pharmaguard.application.use_cases.permission.get_user_permissions import (
    GetUserPermissionsUseCase,
)
from pharmaguard.application.use_cases.permission.update_user_permissions import (
    UpdateUserPermissionsUseCase,
)
from pharmaguard.interfaces.api.serializers import decision_to_dict, user_permissions_to_dict


class PermissionCheckResource:
    """POST /v1/permissions/check - may the calling user perform an action?"""

    def __init__(self, check_permission: CheckPermissionUseCase) -> None:
        self._check = check_permission

    async def on_post(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        user = getattr(req.context, "user", None)
        if not user:
            resp.status = falcon.HTTP_401
            resp.media = {"error": "Unauthorized"}
            return

        body = await req.get_media()
        action = body.get("action") if isinstance(body, dict) else None
        if not action or not isinstance(action, str):
            resp.status = falcon.HTTP_400
            resp.media = {"error": "Missing required field: action"}
            return

        decision = await self._check.execute(
            user.user_id, action, explain=bool(body.get("explain", False))
        )
        resp.media = decision_to_dict(decision)
        resp.status = falcon.HTTP_200


class UserPermissionsResource:
    """GET/PUT /v1/users/{user_id}/permissions - resolved permissions and direct/denied lists."""

    def __init__(
        self,
        get_user_permissions: GetUserPermissionsUseCase,
        update_user_permissions: UpdateUserPermissionsUseCase,
    ) -> None:
        self._get = get_user_permissions
        self._update = update_user_permissions

    async def on_get(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, user_id: str
    ) -> None:
        user = getattr(req.context, "user", None)
        if not user:
            resp.status = falcon.HTTP_401
            resp.media = {"error": "Unauthorized"}
            return

        result = await self._get.execute(user.user_id, user_id)
        resp.media = {"user_id": user_id, **result.to_dict()}
        resp.status = falcon.HTTP_200

    async def on_put(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, user_id: str
    ) -> None:
        """Body: direct_permissions, denied_permissions (lists), mode: replace|merge."""
        user = getattr(req.context, "user", None)
        if not user:
            resp.status = falcon.HTTP_401
            resp.media = {"error": "Unauthorized"}
            return

        body = await req.get_media()
        if not isinstance(body, dict):
            resp.status = falcon.HTTP_400
            resp.media = {"error": "Request body must be a JSON object"}
            return
        mode = body.get("mode", "replace")
        if mode not in ("replace", "merge"):
            resp.status = falcon.HTTP_400
            resp.media = {"error": "mode must be 'replace' or 'merge'"}
            return

        updated = await self._update.execute(
            user.user_id,
            user_id,
            direct_permissions=body.get("direct_permissions"),
            denied_permissions=body.get("denied_permissions"),
            replace=mode == "replace",
        )
        resp.media = user_permissions_to_dict(updated)
        resp.status = falcon.HTTP_200
