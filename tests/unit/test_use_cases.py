"""Unit tests for use cases."""

import pytest

from pharmaguard.application.dto.bulk import UserUpdateInput
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
from pharmaguard.domain.entities import User
from pharmaguard.domain.exceptions import (
    BulkLimitExceeded,
    ConflictingPermissions,
    PermissionDenied,
    UnknownPermission,
    UserNotFound,
    ValidationError,
    WorkspaceNotFound,
)
from pharmaguard.domain.value_objects import PlanTier, SystemRole, WorkplaceRole

from tests.conftest import Engine, add_tenant, make_role


@pytest.fixture
def network(engine: Engine) -> Engine:
    """Network-tier pharmacy: owner-1 owns ws-1, tech-1 is a member, admin-1 is super admin."""
    users = engine.uow.users
    users.add_user(User(id="owner-1", system_role=SystemRole.OWNER))
    users.add_user(User(id="tech-1", workplace_role=WorkplaceRole.TECHNICIAN))
    users.add_user(User(id="admin-1", system_role=SystemRole.SUPER_ADMIN))
    add_tenant(engine.uow, "owner-1", member_ids=["tech-1"], tier=PlanTier.NETWORK)
    engine.uow.roles.add_role(make_role("reporter", ["reports.basic"], display_name="Reporter"))
    engine.uow.roles.add_role(make_role("stock", ["medication.create"]))
    return engine


def _args(e: Engine) -> tuple:
    return e.uow_factory, e.context_loader, e.resolver


# --- CheckPermissionUseCase ---


@pytest.mark.asyncio
async def test_check_permission(network: Engine) -> None:
    use_case = CheckPermissionUseCase(*_args(network))
    decision = await use_case.execute("tech-1", "patient.read")
    assert decision.allowed


@pytest.mark.asyncio
async def test_check_permission_unknown_user(network: Engine) -> None:
    use_case = CheckPermissionUseCase(*_args(network))
    with pytest.raises(UserNotFound):
        await use_case.execute("ghost", "patient.read")


@pytest.mark.asyncio
async def test_check_permission_explain(network: Engine) -> None:
    use_case = CheckPermissionUseCase(*_args(network))
    decision = await use_case.execute("tech-1", "reports.basic", explain=True)
    assert not decision.allowed
    assert "Role 'Reporter' grants this permission" in decision.suggestions


# --- GetUserPermissionsUseCase ---


@pytest.mark.asyncio
async def test_user_can_read_own_permissions(network: Engine) -> None:
    use_case = GetUserPermissionsUseCase(*_args(network))
    result = await use_case.execute("tech-1", "tech-1")
    assert result.allows("patient.read")


@pytest.mark.asyncio
async def test_reading_other_users_permissions_needs_team_manage(network: Engine) -> None:
    use_case = GetUserPermissionsUseCase(*_args(network))
    with pytest.raises(PermissionDenied, match="team.manage"):
        await use_case.execute("tech-1", "owner-1")

    result = await use_case.execute("owner-1", "tech-1")
    assert result.allows("medication.create")


@pytest.mark.asyncio
async def test_unknown_actor_denied(network: Engine) -> None:
    use_case = GetUserPermissionsUseCase(*_args(network))
    with pytest.raises(PermissionDenied):
        await use_case.execute("ghost", "tech-1")


# --- UpdateUserPermissionsUseCase ---


def _update_use_case(e: Engine) -> UpdateUserPermissionsUseCase:
    return UpdateUserPermissionsUseCase(*_args(e), e.catalog, e.matrix, e.invalidator)


@pytest.mark.asyncio
async def test_update_permissions_replace(network: Engine) -> None:
    user = await _update_use_case(network).execute(
        "owner-1", "tech-1", direct_permissions=["patient.delete"], denied_permissions=["patient.read"]
    )
    assert user.direct_permissions == ["patient.delete"]
    assert user.denied_permissions == ["patient.read"]

    check = CheckPermissionUseCase(*_args(network))
    assert (await check.execute("tech-1", "patient.delete")).allowed
    assert not (await check.execute("tech-1", "patient.read")).allowed


@pytest.mark.asyncio
async def test_update_permissions_merge_moves_between_lists(network: Engine) -> None:
    use_case = _update_use_case(network)
    await use_case.execute("owner-1", "tech-1", denied_permissions=["patient.read"])

    user = await use_case.execute(
        "owner-1", "tech-1", direct_permissions=["patient.read"], replace=False
    )

    assert user.direct_permissions == ["patient.read"]
    assert user.denied_permissions == []


@pytest.mark.asyncio
async def test_update_permissions_rejects_overlap(network: Engine) -> None:
    with pytest.raises(ConflictingPermissions):
        await _update_use_case(network).execute(
            "owner-1",
            "tech-1",
            direct_permissions=["patient.read"],
            denied_permissions=["patient.read"],
        )
    assert network.uow.users._by_id["tech-1"].denied_permissions == []


@pytest.mark.asyncio
async def test_update_permissions_rejects_catalog_conflict(network: Engine) -> None:
    with pytest.raises(ValidationError, match="conflicts with"):
        await _update_use_case(network).execute(
            "owner-1", "tech-1", direct_permissions=["workspace.delete", "workspace.transfer"]
        )


@pytest.mark.asyncio
async def test_update_permissions_rejects_unknown(network: Engine) -> None:
    with pytest.raises(UnknownPermission):
        await _update_use_case(network).execute(
            "owner-1", "tech-1", direct_permissions=["patient.teleport"]
        )


@pytest.mark.asyncio
async def test_update_permissions_requires_role_change(network: Engine) -> None:
    with pytest.raises(PermissionDenied):
        await _update_use_case(network).execute(
            "tech-1", "tech-1", direct_permissions=["patient.delete"]
        )


# --- Assignment use cases ---


def _assign_use_case(e: Engine) -> AssignRoleUseCase:
    return AssignRoleUseCase(*_args(e), e.assignments, e.roles, e.matrix)


@pytest.mark.asyncio
async def test_assign_and_revoke_role(network: Engine) -> None:
    assign = _assign_use_case(network)
    revoke = RevokeRoleUseCase(*_args(network), network.assignments)
    listing = ListUserRolesUseCase(*_args(network), network.assignments)
    check = CheckPermissionUseCase(*_args(network))

    assignment = await assign.execute("owner-1", "tech-1", "reporter", reason="Covers reports")
    assert assignment.assignment_reason == "Covers reports"
    assert (await check.execute("tech-1", "reports.basic")).allowed
    assert [a.role_id for a in await listing.execute("tech-1", "tech-1")] == ["reporter"]

    await revoke.execute("owner-1", "tech-1", "reporter")
    assert not (await check.execute("tech-1", "reports.basic")).allowed
    history = await listing.execute("owner-1", "tech-1", include_inactive=True)
    assert history[0].is_active is False


@pytest.mark.asyncio
async def test_assign_role_permission_denied(network: Engine, mock_permission_checker) -> None:
    mock_permission_checker.check.return_value = False
    use_case = AssignRoleUseCase(
        network.uow_factory,
        network.context_loader,
        mock_permission_checker,
        network.assignments,
        network.roles,
        network.matrix,
    )
    with pytest.raises(PermissionDenied, match="team.role_change"):
        await use_case.execute("owner-1", "tech-1", "reporter")
    assert network.uow.assignments.all() == []


@pytest.mark.asyncio
async def test_list_other_users_roles_needs_team_manage(network: Engine) -> None:
    listing = ListUserRolesUseCase(*_args(network), network.assignments)
    with pytest.raises(PermissionDenied):
        await listing.execute("tech-1", "owner-1")


# --- Role use cases ---


@pytest.mark.asyncio
async def test_role_lifecycle_requires_system_settings(network: Engine) -> None:
    create = CreateRoleUseCase(*_args(network), network.roles)
    with pytest.raises(PermissionDenied):
        await create.execute("owner-1", "auditor", permissions=["audit.view"])

    role = await create.execute(
        "admin-1", "auditor", permissions=["audit.view"], parent_id="reporter"
    )
    assert role.display_name == "auditor"
    assert role.hierarchy_level == 1

    update = UpdateRoleUseCase(*_args(network), network.roles)
    updated = await update.execute("admin-1", role.id, display_name="Auditor", parent_id=None)
    assert updated.display_name == "Auditor"
    assert updated.parent_id is None
    assert updated.hierarchy_level == 0

    deactivate = DeactivateRoleUseCase(*_args(network), network.roles)
    deactivated = await deactivate.execute("admin-1", role.id)
    assert deactivated.is_active is False


@pytest.mark.asyncio
async def test_update_role_keeps_parent_by_default(network: Engine) -> None:
    network.uow.roles.add_role(make_role("junior", [], parent_id="reporter", level=1))
    update = UpdateRoleUseCase(*_args(network), network.roles)
    updated = await update.execute("admin-1", "junior", permissions=["patient.read"])
    assert updated.parent_id == "reporter"
    assert updated.permissions == ["patient.read"]


# --- BulkUpdateUsersUseCase ---


def _bulk_use_case(e: Engine, limit: int = 100) -> BulkUpdateUsersUseCase:
    return BulkUpdateUsersUseCase(
        *_args(e), e.catalog, e.assignments, e.roles, e.matrix, e.invalidator, limit=limit
    )


@pytest.mark.asyncio
async def test_bulk_update_applies_per_user(network: Engine) -> None:
    network.uow.users.add_user(User(id="cash-1", workplace_role=WorkplaceRole.CASHIER))
    network.uow.workspaces._workspaces["ws-1"].member_ids.append("cash-1")
    results = await _bulk_use_case(network).execute(
        "owner-1",
        [
            UserUpdateInput(user_id="tech-1", role_ids=["reporter"]),
            UserUpdateInput(user_id="cash-1", direct_permissions=["patient.teleport"]),
            UserUpdateInput(user_id="ghost", role_ids=["reporter"]),
        ],
    )

    assert [r.success for r in results] == [True, False, False]
    assert results[0].changes["roles"] == {"from": [], "to": ["reporter"]}
    assert "patient.teleport" in results[1].errors[0]
    assert results[2].errors == ["User ghost not found"]
    assert await network.assignments.active_roles_for("tech-1") == {"reporter"}


@pytest.mark.asyncio
async def test_bulk_update_dry_run_writes_nothing(network: Engine) -> None:
    results = await _bulk_use_case(network).execute(
        "owner-1",
        [
            UserUpdateInput(
                user_id="tech-1", role_ids=["stock"], denied_permissions=["patient.read"]
            )
        ],
        dry_run=True,
    )

    assert results[0].success
    assert results[0].changes["denied_permissions"] == {"from": [], "to": ["patient.read"]}
    assert network.uow.assignments.all() == []
    assert network.uow.users._by_id["tech-1"].denied_permissions == []


@pytest.mark.asyncio
async def test_bulk_update_warns_on_empty_entry(network: Engine) -> None:
    results = await _bulk_use_case(network).execute(
        "owner-1", [UserUpdateInput(user_id="tech-1")]
    )
    assert results[0].success
    assert results[0].warnings == ["No changes requested"]


@pytest.mark.asyncio
async def test_bulk_update_limits(network: Engine) -> None:
    with pytest.raises(ValidationError):
        await _bulk_use_case(network).execute("owner-1", [])
    with pytest.raises(BulkLimitExceeded):
        await _bulk_use_case(network, limit=1).execute(
            "owner-1", [UserUpdateInput(user_id="a"), UserUpdateInput(user_id="b")]
        )


@pytest.mark.asyncio
async def test_bulk_update_requires_role_change(network: Engine) -> None:
    with pytest.raises(PermissionDenied):
        await _bulk_use_case(network).execute("tech-1", [UserUpdateInput(user_id="tech-1")])


# --- InvalidateWorkspaceContextUseCase ---


@pytest.mark.asyncio
async def test_invalidate_workspace_context(network: Engine) -> None:
    await network.context_loader.load("tech-1")
    use_case = InvalidateWorkspaceContextUseCase(*_args(network))

    user_ids = await use_case.execute("owner-1", "ws-1")

    assert user_ids == ["owner-1", "tech-1"]
    assert network.context_cache.get("tech-1") is None


@pytest.mark.asyncio
async def test_invalidate_unknown_workspace(network: Engine) -> None:
    use_case = InvalidateWorkspaceContextUseCase(*_args(network))
    with pytest.raises(WorkspaceNotFound):
        await use_case.execute("owner-1", "ws-404")


# --- Tenant isolation and grant limits ---


@pytest.fixture
def two_tenants(network: Engine) -> Engine:
    """network plus a second pharmacy: owner-2 owns ws-2, where tech-2 works."""
    network.uow.users.add_user(User(id="owner-2", system_role=SystemRole.OWNER))
    network.uow.users.add_user(User(id="tech-2", workplace_role=WorkplaceRole.TECHNICIAN))
    add_tenant(
        network.uow, "owner-2", workspace_id="ws-2", member_ids=["tech-2"], tier=PlanTier.NETWORK
    )
    return network


@pytest.mark.asyncio
async def test_update_permissions_stays_inside_actor_workspace(two_tenants: Engine) -> None:
    with pytest.raises(PermissionDenied, match="not a member of your workspace"):
        await _update_use_case(two_tenants).execute(
            "owner-1", "owner-2", denied_permissions=["patient.read"]
        )
    assert two_tenants.uow.users._by_id["owner-2"].denied_permissions == []


@pytest.mark.asyncio
async def test_update_own_permissions_is_refused(network: Engine) -> None:
    with pytest.raises(PermissionDenied, match="own permissions"):
        await _update_use_case(network).execute(
            "owner-1", "owner-1", direct_permissions=["admin.system_settings"]
        )

    create = CreateRoleUseCase(*_args(network), network.roles)
    with pytest.raises(PermissionDenied):
        await create.execute("owner-1", "rogue", permissions=["admin.users"])


@pytest.mark.asyncio
async def test_platform_permissions_cannot_be_granted_by_owner(network: Engine) -> None:
    with pytest.raises(PermissionDenied, match="admin.system_settings"):
        await _update_use_case(network).execute(
            "owner-1", "tech-1", direct_permissions=["patient.delete", "admin.system_settings"]
        )
    assert network.uow.users._by_id["tech-1"].direct_permissions == []


@pytest.mark.asyncio
async def test_super_admin_grants_across_tenants(two_tenants: Engine) -> None:
    user = await _update_use_case(two_tenants).execute(
        "admin-1", "tech-2", direct_permissions=["admin.users"]
    )
    assert user.direct_permissions == ["admin.users"]


@pytest.mark.asyncio
async def test_assignments_stay_inside_actor_workspace(two_tenants: Engine) -> None:
    assign = _assign_use_case(two_tenants)
    revoke = RevokeRoleUseCase(*_args(two_tenants), two_tenants.assignments)
    listing = ListUserRolesUseCase(*_args(two_tenants), two_tenants.assignments)
    permissions = GetUserPermissionsUseCase(*_args(two_tenants))

    with pytest.raises(PermissionDenied):
        await assign.execute("owner-1", "tech-2", "reporter")
    with pytest.raises(PermissionDenied, match="ws-2"):
        await assign.execute("owner-1", "tech-1", "reporter", workspace_id="ws-2")
    assert two_tenants.uow.assignments.all() == []

    await assign.execute("owner-2", "tech-2", "reporter")
    with pytest.raises(PermissionDenied):
        await revoke.execute("owner-1", "tech-2", "reporter")
    with pytest.raises(PermissionDenied):
        await listing.execute("owner-1", "tech-2")
    with pytest.raises(PermissionDenied):
        await permissions.execute("owner-1", "tech-2")
    assert await two_tenants.assignments.active_roles_for("tech-2") == {"reporter"}


@pytest.mark.asyncio
async def test_assigning_missing_target_reports_user(network: Engine) -> None:
    with pytest.raises(UserNotFound):
        await _assign_use_case(network).execute("owner-1", "ghost", "reporter")


@pytest.mark.asyncio
async def test_role_with_platform_permission_needs_super_admin(network: Engine) -> None:
    network.uow.roles.add_role(make_role("platform", ["admin.system_settings"]))
    assign = _assign_use_case(network)

    with pytest.raises(PermissionDenied, match="admin.system_settings"):
        await assign.execute("owner-1", "tech-1", "platform")
    with pytest.raises(PermissionDenied, match="own permissions"):
        await assign.execute("owner-1", "owner-1", "reporter")

    await assign.execute("admin-1", "tech-1", "platform")
    assert await network.assignments.active_roles_for("tech-1") == {"platform"}


@pytest.mark.asyncio
async def test_bulk_update_refuses_entries_outside_actor_reach(two_tenants: Engine) -> None:
    two_tenants.uow.roles.add_role(make_role("platform", ["admin.system_settings"]))
    results = await _bulk_use_case(two_tenants).execute(
        "owner-1",
        [
            UserUpdateInput(user_id="tech-2", denied_permissions=["patient.read"]),
            UserUpdateInput(user_id="owner-1", direct_permissions=["admin.system_settings"]),
            UserUpdateInput(user_id="tech-1", direct_permissions=["admin.system_settings"]),
            UserUpdateInput(user_id="tech-1", role_ids=["platform"]),
            UserUpdateInput(user_id="tech-1", role_ids=["reporter"], workspace_id="ws-2"),
        ],
    )

    assert [r.success for r in results] == [False] * 5
    assert "not a member of your workspace" in results[0].errors[0]
    assert "own permissions" in results[1].errors[0]
    assert results[2].errors == ["Cannot grant platform permissions: admin.system_settings"]
    assert results[3].errors == ["Cannot grant platform permissions: admin.system_settings"]
    assert results[4].errors == ["Cannot manage workspace ws-2"]
    assert two_tenants.uow.users._by_id["tech-2"].denied_permissions == []
    assert two_tenants.uow.assignments.all() == []


@pytest.mark.asyncio
async def test_invalidate_other_workspace_is_refused(two_tenants: Engine) -> None:
    use_case = InvalidateWorkspaceContextUseCase(*_args(two_tenants))
    with pytest.raises(PermissionDenied, match="ws-2"):
        await use_case.execute("owner-1", "ws-2")
