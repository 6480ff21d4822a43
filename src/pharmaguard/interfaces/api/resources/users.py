"""Bulk user update API resource."""

import falcon.asgi

from pharmaguard.application.dto.bulk import UserUpdateInput
from pharmaguard.application.use_cases.user.bulk_update_users import BulkUpdateUsersUseCase
from pharmaguard.interfaces.api.serializers import update_result_to_dict


class BulkUsersResource:
    """POST /v1/users/bulk - role and permission changes for many users."""

    def __init__(self, bulk_update_users: BulkUpdateUsersUseCase) -> None:
        self._bulk = bulk_update_users

    async def on_post(self, req: falcon.asgi.Request, resp: falcon.asgi.Response) -> None:
        """Body: {"updates": [{user_id, role_ids, direct_permissions, denied_permissions,
        workspace_id}], "dry_run": bool}."""
        user = getattr(req.context, "user", None)
        if not user:
            resp.status = falcon.HTTP_401
            resp.media = {"error": "Unauthorized"}
            return

        body = await req.get_media()
        if not isinstance(body, dict) or not isinstance(body.get("updates", []), list):
            resp.status = falcon.HTTP_400
            resp.media = {"error": "Request body must be a JSON object with an updates list"}
            return
        try:
            updates = [
                UserUpdateInput(
                    user_id=item["user_id"],
                    role_ids=item.get("role_ids"),
                    direct_permissions=item.get("direct_permissions"),
                    denied_permissions=item.get("denied_permissions"),
                    workspace_id=item.get("workspace_id"),
                )
                for item in body["updates"]
            ]
        except KeyError as e:
            resp.status = falcon.HTTP_400
            resp.media = {"error": f"Missing required field: {e}"}
            return
        except (AttributeError, TypeError):
            resp.status = falcon.HTTP_400
            resp.media = {"error": "Each update must be a JSON object"}
            return

        dry_run = bool(body.get("dry_run", False))
        results = await self._bulk.execute(user.user_id, updates, dry_run=dry_run)
        resp.media = {
            "dry_run": dry_run,
            "summary": {
                "total": len(results),
                "succeeded": sum(1 for r in results if r.success),
                "failed": sum(1 for r in results if not r.success),
            },
            "results": [update_result_to_dict(r) for r in results],
        }
        resp.status = falcon.HTTP_200
