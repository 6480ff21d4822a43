"""Falcon ASGI application."""

from collections.abc import Sequence

import falcon.asgi
from falcon.asgi import App

from pharmaguard.interfaces.api.errors import register_error_handlers
from pharmaguard.interfaces.api.resources.assignments import UserRoleResource, UserRolesResource
from pharmaguard.interfaces.api.resources.health import HealthResource
from pharmaguard.interfaces.api.resources.permissions import (
    PermissionCheckResource,
    UserPermissionsResource,
)
from pharmaguard.interfaces.api.resources.roles import RoleResource, RolesResource
from pharmaguard.interfaces.api.resources.users import BulkUsersResource
from pharmaguard.interfaces.api.resources.workspaces import WorkspaceContextInvalidateResource


def create_app(components, middleware: Sequence[object] = ()) -> App:
    """Create Falcon ASGI app with routes over the engine components."""
    app = falcon.asgi.App(middleware=list(middleware))
    register_error_handlers(app)

    health = HealthResource(components.caches)
    app.add_route("/v1/health", health)
    app.add_route("/v1/health/ready", health, suffix="ready")
    app.add_route("/v1/permissions/check", PermissionCheckResource(components.check_permission))
    app.add_route(
        "/v1/users/bulk",
        BulkUsersResource(components.bulk_update_users),
    )
    app.add_route(
        "/v1/users/{user_id}/permissions",
        UserPermissionsResource(
            components.get_user_permissions, components.update_user_permissions
        ),
    )
    app.add_route(
        "/v1/users/{user_id}/roles",
        UserRolesResource(components.list_user_roles, components.assign_role),
    )
    app.add_route(
        "/v1/users/{user_id}/roles/{role_id}",
        UserRoleResource(components.revoke_role),
    )
    app.add_route("/v1/roles", RolesResource(components.roles, components.create_role))
    app.add_route(
        "/v1/roles/{role_id}",
        RoleResource(components.roles, components.update_role, components.deactivate_role),
    )
    app.add_route(
        "/v1/workspaces/{workspace_id}/context/invalidate",
        WorkspaceContextInvalidateResource(components.invalidate_workspace_context),
    )
    return app
