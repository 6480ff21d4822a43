"""User role assignment API resources."""

import falcon.asgi

from pharmaguard.application.use_cases.assignment.assign_role import AssignRoleUseCase
from pharmaguard.application.use_cases.assignment.list_user_roles import ListUserRolesUseCase
from pharmaguard.application.use_cases.assignment.revoke_role import RevokeRoleUseCase
from pharmaguard.interfaces.api.serializers import assignment_to_dict, parse_datetime


class UserRolesResource:
    """GET/POST /v1/users/{user_id}/roles - list and assign roles."""

    def __init__(self, list_user_roles: ListUserRolesUseCase, assign_role: AssignRoleUseCase) -> None:
        self._list = list_user_roles
        self._assign = assign_role

    async def on_get(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, user_id: str
    ) -> None:
        user = getattr(req.context, "user", None)
        if not user:
            resp.status = falcon.HTTP_401
            resp.media = {"error": "Unauthorized"}
            return

        include_inactive = req.get_param_as_bool("include_inactive", default=False)
        assignments = await self._list.execute(
            user.user_id, user_id, include_inactive=include_inactive
        )
        resp.media = {"items": [assignment_to_dict(a) for a in assignments]}
        resp.status = falcon.HTTP_200

    async def on_post(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, user_id: str
    ) -> None:
        """Body: role_id, workspace_id, is_temporary, expires_at (ISO 8601), reason, replace."""
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
        try:
            role_id = body["role_id"]
            expires_at = parse_datetime(body.get("expires_at"))
        except KeyError as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": f"Missing required field: {e}"}
            return
        except ValueError as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": str(e)}
            return

        assignment = await self._assign.execute(
            user.user_id,
            user_id,
            role_id,
            workspace_id=body.get("workspace_id"),
            temporary=bool(body.get("is_temporary", False)),
            expires_at=expires_at,
            reason=body.get("reason"),
            replace=bool(body.get("replace", False)),
        )
        resp.media = assignment_to_dict(assignment)
        resp.status = falcon.HTTP_201


class UserRoleResource:
    """DELETE /v1/users/{user_id}/roles/{role_id} - revoke a role."""

    def __init__(self, revoke_role: RevokeRoleUseCase) -> None:
        self._revoke = revoke_role

    async def on_delete(
        self,
        req: falcon.asgi.Request,
        resp: falcon.asgi.Response,
        user_id: str,
        role_id: str,
    ) -> None:
        user = getattr(req.context, "user", None)
        if not user:
            resp.status = falcon.HTTP_401
            resp.media = {"error": "Unauthorized"}
            return

        await self._revoke.execute(
            user.user_id,
            user_id,
            role_id,
            workspace_id=req.get_param("workspace_id"),
            reason=req.get_param("reason"),
        )
        resp.status = falcon.HTTP_204
