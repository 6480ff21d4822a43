"""Workspace context API resource."""

import falcon.asgi

from pharmaguard.application.use_cases.workspace.invalidate_context import (
    InvalidateWorkspaceContextUseCase,
)


class WorkspaceContextInvalidateResource:
    """POST /v1/workspaces/{workspace_id}/context/invalidate - billing state changed."""

    def __init__(self, invalidate_context: InvalidateWorkspaceContextUseCase) -> None:
        self._invalidate = invalidate_context

    async def on_post(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response, workspace_id: str
    ) -> None:
        user = getattr(req.context, "user", None)
        if not user:
            resp.status = falcon.HTTP_401
            resp.media = {"error": "Unauthorized"}
            return

        user_ids = await self._invalidate.execute(user.user_id, workspace_id)
        resp.media = {"workspace_id": workspace_id, "invalidated_users": len(user_ids)}
        resp.status = falcon.HTTP_200
