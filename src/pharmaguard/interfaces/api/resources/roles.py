"""Role API resources."""

import falcon.asgi

from pharmaguard.application.services.role_hierarchy import RoleHierarchyStore
from pharmaguard.application.use_cases.role.create_role import CreateRoleUseCase
from pharmaguard.application.use_cases.role.deactivate_role import DeactivateRoleUseCase
from pharmaguard.application.use_cases.role.update_role import KEEP_PARENT, UpdateRoleUseCase
from pharmaguard.interfaces.api.serializers import role_to_dict


class RolesResource:
    """GET/POST /v1/roles - list and create roles."""

    def __init__(self, roles: RoleHierarchyStore, create_role: CreateRoleUseCase) -> None:
        self._roles = roles
        self._create = create_role

    async def on_get(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        user = getattr(req.context, "user", None)
        if not user:
            resp.status = falcon.HTTP_401
            resp.media = {"error": "Unauthorized"}
            return

        include_inactive = req.get_param_as_bool("include_inactive", default=False)
        roles = await self._roles.list_roles(include_inactive=include_inactive)
        resp.media = {"items": [role_to_dict(r) for r in roles]}
        resp.status = falcon.HTTP_200

    async def on_post(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
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
            name = body["name"]
        except KeyError as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": f"Missing required field: {e}"}
            return

        role = await self._create.execute(
            user.user_id,
            name,
            display_name=body.get("display_name"),
            permissions=body.get("permissions"),
            parent_id=body.get("parent_id"),
            category=body.get("category", "custom"),
            description=body.get("description", ""),
        )
        resp.media = role_to_dict(role)
        resp.status = falcon.HTTP_201


class RoleResource:
    """GET/PATCH/DELETE /v1/roles/{role_id}."""

    def __init__(
        self,
        roles: RoleHierarchyStore,
        update_role: UpdateRoleUseCase,
        deactivate_role: DeactivateRoleUseCase,
    ) -> None:
        self._roles = roles
        self._update = update_role
        self._deactivate = deactivate_role

    async def on_get(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, role_id: str
    ) -> None:
        """Role with its effective permissions and inheritance path."""
        user = getattr(req.context, "user", None)
        if not user:
            resp.status = falcon.HTTP_401
            resp.media = {"error": "Unauthorized"}
            return

        role = await self._roles.get_role(role_id)
        effective = await self._roles.effective_permissions(role_id)
        path = await self._roles.inheritance_path(role_id)
        resp.media = {
            **role_to_dict(role),
            "effective_permissions": sorted(effective),
            "inheritance_path": [r.name for r in path],
        }
        resp.status = falcon.HTTP_200

    async def on_patch(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, role_id: str
    ) -> None:
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
        role = await self._update.execute(
            user.user_id,
            role_id,
            display_name=body.get("display_name"),
            description=body.get("description"),
            category=body.get("category"),
            permissions=body.get("permissions"),
            parent_id=body["parent_id"] if "parent_id" in body else KEEP_PARENT,
        )
        resp.media = role_to_dict(role)
        resp.status = falcon.HTTP_200

    async def on_delete(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, role_id: str
    ) -> None:
        """Deactivate (soft-delete) the role."""
        user = getattr(req.context, "user", None)
        if not user:
            resp.status = falcon.HTTP_401
            resp.media = {"error": "Unauthorized"}
            return

        await self._deactivate.execute(user.user_id, role_id)
        resp.status = falcon.HTTP_204
