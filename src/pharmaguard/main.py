"""Application entry point and composition root."""

from dataclasses import dataclass

import structlog
from falcon.asgi import App

from pharmaguard import __version__
from pharmaguard.application.ports import Cache
from pharmaguard.application.services.cache_invalidation import CacheInvalidator
from pharmaguard.application.services.permission_catalog import (
    ActionRequirementMatrix,
    PermissionCatalog,
)
from pharmaguard.application.services.permission_resolver import DynamicPermissionResolver
from pharmaguard.application.services.role_assignment import RoleAssignmentStore
from pharmaguard.application.services.role_hierarchy import RoleHierarchyStore
from pharmaguard.application.services.workspace_context import WorkspaceContextLoader
from pharmaguard.application.use_cases.assignment.assign_role import AssignRoleUseCase
from pharmaguard.application.use_cases.assignment.list_user_roles import ListUserRolesUseCase
from pharmaguard.application.use_cases.assignment.revoke_role import RevokeRoleUseCase
from pharmaguard.application.use_cases.permission.check_permission import CheckPermissionUseCase
from pharmaguard.application.use_cases.permission.get_user_permissions import (
    GetUserPermissionsUseCase,
)
from pharmaguard.application.use_cases.permission.update_user_permissions import (
    UpdateUserPermissionsUseCase,
)
from pharmaguard.application.use_cases.role.create_role import CreateRoleUseCase
from pharmaguard.application.use_cases.role.deactivate_role import DeactivateRoleUseCase
from pharmaguard.application.use_cases.role.update_role import UpdateRoleUseCase
from pharmaguard.application.use_cases.user.bulk_update_users import BulkUpdateUsersUseCase
from pharmaguard.application.use_cases.workspace.invalidate_context import (
    InvalidateWorkspaceContextUseCase,
)
from pharmaguard.config import Settings, get_settings
from pharmaguard.infrastructure.auth.keycloak_provider import KeycloakProvider
from pharmaguard.infrastructure.cache.memory_cache import MemoryCache
from pharmaguard.infrastructure.cache.sweeper import PeriodicSweeper
from pharmaguard.infrastructure.logging_config import configure_logging
from pharmaguard.infrastructure.persistence.postgres.connection import create_pool
from pharmaguard.infrastructure.persistence.postgres.unit_of_work import create_uow_factory
from pharmaguard.interfaces.api.app import create_app
from pharmaguard.interfaces.api.middleware.auth import AuthMiddleware
from pharmaguard.interfaces.api.middleware.cors import CORSMiddleware
from pharmaguard.interfaces.api.middleware.lifespan import LifespanMiddleware

log = structlog.get_logger(__name__)


@dataclass
class Components:
    """Everything the HTTP layer and scripts need, wired once."""

    catalog: PermissionCatalog
    matrix: ActionRequirementMatrix
    invalidator: CacheInvalidator
    roles: RoleHierarchyStore
    assignments: RoleAssignmentStore
    context_loader: WorkspaceContextLoader
    resolver: DynamicPermissionResolver
    caches: list[Cache]
    sweeper: PeriodicSweeper
    check_permission: CheckPermissionUseCase
    get_user_permissions: GetUserPermissionsUseCase
    update_user_permissions: UpdateUserPermissionsUseCase
    assign_role: AssignRoleUseCase
    revoke_role: RevokeRoleUseCase
    list_user_roles: ListUserRolesUseCase
    bulk_update_users: BulkUpdateUsersUseCase
    create_role: CreateRoleUseCase
    update_role: UpdateRoleUseCase
    deactivate_role: DeactivateRoleUseCase
    invalidate_workspace_context: InvalidateWorkspaceContextUseCase


def build_components(uow_factory, settings: Settings) -> Components:
    """Construct caches, stores, resolver and use cases over a UoW factory."""
    matrix = ActionRequirementMatrix()
    catalog = PermissionCatalog.from_matrix(matrix)

    role_cache = MemoryCache("roles", default_ttl=settings.role_cache_ttl)
    decision_cache = MemoryCache("decisions", default_ttl=settings.permission_cache_ttl)
    context_cache = MemoryCache("workspace_contexts", default_ttl=settings.workspace_context_ttl)
    invalidator = CacheInvalidator(role_cache, decision_cache, context_cache)

    roles = RoleHierarchyStore(
        uow_factory,
        catalog,
        role_cache,
        invalidator,
        max_depth=settings.max_hierarchy_depth,
    )
    assignments = RoleAssignmentStore(uow_factory, invalidator)
    context_loader = WorkspaceContextLoader(
        uow_factory,
        context_cache,
        invalidator,
        timeout=settings.workspace_context_timeout,
    )
    resolver = DynamicPermissionResolver(
        matrix,
        roles,
        assignments,
        decision_cache,
        invalidator,
        ttl=settings.permission_cache_ttl,
    )

    caches = [role_cache, decision_cache, context_cache]
    sweeper = PeriodicSweeper(
        caches,
        interval=settings.cache_sweep_interval,
        jobs=[assignments.expire_assignments],
    )

    return Components(
        catalog=catalog,
        matrix=matrix,
        invalidator=invalidator,
        roles=roles,
        assignments=assignments,
        context_loader=context_loader,
        resolver=resolver,
        caches=caches,
        sweeper=sweeper,
        check_permission=CheckPermissionUseCase(uow_factory, context_loader, resolver),
        get_user_permissions=GetUserPermissionsUseCase(uow_factory, context_loader, resolver),
        update_user_permissions=UpdateUserPermissionsUseCase(
            uow_factory, context_loader, resolver, catalog, matrix, invalidator
        ),
        assign_role=AssignRoleUseCase(
            uow_factory, context_loader, resolver, assignments, roles, matrix
        ),
        revoke_role=RevokeRoleUseCase(uow_factory, context_loader, resolver, assignments),
        list_user_roles=ListUserRolesUseCase(uow_factory, context_loader, resolver, assignments),
        bulk_update_users=BulkUpdateUsersUseCase(
            uow_factory,
            context_loader,
            resolver,
            catalog,
            assignments,
            roles,
            matrix,
            invalidator,
            limit=settings.bulk_update_limit,
        ),
        create_role=CreateRoleUseCase(uow_factory, context_loader, resolver, roles),
        update_role=UpdateRoleUseCase(uow_factory, context_loader, resolver, roles),
        deactivate_role=DeactivateRoleUseCase(uow_factory, context_loader, resolver, roles),
        invalidate_workspace_context=InvalidateWorkspaceContextUseCase(
            uow_factory, context_loader, resolver
        ),
    )


def main() -> None:
    """CLI entry point - serve the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "pharmaguard.main:create_pharmaguard_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )


def create_pharmaguard_app() -> App:
    """Composition root - build Falcon app with all dependencies."""
    settings = get_settings()
    configure_logging(settings.log_level, json_logs=settings.log_json)

    pool = create_pool(
        settings.database_url,
        min_size=settings.database_pool_min_size,
        max_size=settings.database_pool_max_size,
    )
    uow_factory = create_uow_factory(pool)
    components = build_components(uow_factory, settings)

    keycloak = (
        KeycloakProvider(
            server_url=settings.keycloak_url,
            realm=settings.keycloak_realm,
            client_id=settings.keycloak_client_id,
            client_secret=settings.keycloak_client_secret,
        )
        if settings.keycloak_client_secret
        else None
    )
    trust_user_header = keycloak is None and settings.environment == "development"
    if keycloak is None:
        log.warning("keycloak_disabled", trust_user_header=trust_user_header)

    app = create_app(
        components,
        middleware=[
            CORSMiddleware(settings.cors_origin_list),
            LifespanMiddleware(pool, components.sweeper),
            AuthMiddleware(keycloak, trust_user_header=trust_user_header),
        ],
    )
    log.info("app_created", version=__version__, environment=settings.environment)
    return app
