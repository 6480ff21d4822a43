"""Tests for DynamicPermissionResolver."""

import asyncio
from datetime import timedelta

import pytest

from pharmaguard.application.dto.workspace_context import WorkspaceContext
from pharmaguard.domain.entities import User, UserRoleAssignment
from pharmaguard.domain.exceptions import PermissionResolutionError
from pharmaguard.domain.value_objects import (
    LicenseStatus,
    PermissionSource,
    PlanTier,
    SubscriptionStatus,
    SystemRole,
    UserStatus,
    WorkplaceRole,
)

from tests.conftest import NOW, Engine, add_tenant, make_role


def _pharmacy(engine: Engine, **tenant) -> dict[str, User]:
    """Owner, pharmacist and technician in ws-1."""
    users = engine.uow.users
    people = {
        "owner": users.add_user(User(id="owner-1", system_role=SystemRole.OWNER)),
        "pharmacist": users.add_user(
            User(id="pharm-1", workplace_role=WorkplaceRole.PHARMACIST)
        ),
        "technician": users.add_user(
            User(id="tech-1", workplace_role=WorkplaceRole.TECHNICIAN)
        ),
    }
    add_tenant(engine.uow, "owner-1", member_ids=["pharm-1", "tech-1"], **tenant)
    return people


async def _evaluate(engine: Engine, user: User, action: str):
    context = await engine.context_loader.load(user.id)
    return await engine.resolver.evaluate(user, action, context)


@pytest.mark.asyncio
async def test_unknown_action_is_denied(engine: Engine) -> None:
    people = _pharmacy(engine)
    decision = await _evaluate(engine, people["owner"], "patient.teleport")
    assert not decision.allowed
    assert decision.reason == "Unknown action: patient.teleport"


@pytest.mark.asyncio
async def test_basic_plan_pharmacist(engine: Engine) -> None:
    """Basic plan pharmacist may create patients but not report ADRs."""
    people = _pharmacy(engine, tier=PlanTier.BASIC)

    create = await _evaluate(engine, people["pharmacist"], "patient.create")
    assert create.allowed
    assert create.source == PermissionSource.LEGACY
    assert create.detail == "workplace:Pharmacist"

    adr = await _evaluate(engine, people["pharmacist"], "adr.create")
    assert not adr.allowed
    assert adr.reason == "Requires pharmily plan or higher"


@pytest.mark.asyncio
async def test_workplace_role_hierarchy(engine: Engine) -> None:
    """A cashier satisfies the assistant entry of patient.read."""
    add_tenant(engine.uow, "owner-1", member_ids=["cash-1"])
    cashier = engine.uow.users.add_user(User(id="cash-1", workplace_role=WorkplaceRole.CASHIER))

    read = await _evaluate(engine, cashier, "patient.read")
    assert read.allowed
    assert read.detail == "workplace:Cashier"
    assert not (await _evaluate(engine, cashier, "patient.update")).allowed


@pytest.mark.asyncio
async def test_owner_inferred_from_workspace(engine: Engine) -> None:
    people = _pharmacy(engine)
    decision = await _evaluate(engine, people["owner"], "subscription.manage")
    assert decision.allowed
    assert decision.detail == "workplace:Owner"


@pytest.mark.asyncio
async def test_explicit_denial_beats_direct_role_and_super_admin(engine: Engine) -> None:
    people = _pharmacy(engine)
    admin = engine.uow.users.add_user(
        User(
            id="admin-1",
            system_role=SystemRole.SUPER_ADMIN,
            denied_permissions=["admin.users"],
        )
    )
    decision = await engine.resolver.evaluate(admin, "admin.users", WorkspaceContext.empty())
    assert not decision.allowed
    assert decision.source == PermissionSource.DENIED

    engine.uow.roles.add_role(make_role("clinical", ["patient.read"]))
    await engine.assignments.assign("pharm-1", "clinical", actor="owner-1")
    pharmacist = people["pharmacist"]
    pharmacist.set_permissions([], ["patient.read"])
    decision = await _evaluate(engine, pharmacist, "patient.read")
    assert not decision.allowed
    assert decision.reason == "Permission explicitly denied"


@pytest.mark.asyncio
async def test_super_admin_needs_no_workspace(engine: Engine) -> None:
    admin = User(id="admin-1", system_role=SystemRole.SUPER_ADMIN)
    decision = await engine.resolver.evaluate(
        admin, "admin.system_settings", WorkspaceContext.empty()
    )
    assert decision.allowed
    assert decision.detail == "system:super_admin"
    assert await engine.resolver.check(admin, "backup.schedule", WorkspaceContext.empty())


@pytest.mark.asyncio
async def test_direct_grant(engine: Engine) -> None:
    people = _pharmacy(engine)
    technician = people["technician"]
    assert not (await _evaluate(engine, technician, "patient.delete")).allowed

    technician.set_permissions(["patient.delete"], [])
    engine.invalidator.user_changed(technician.id)

    decision = await _evaluate(engine, technician, "patient.delete")
    assert decision.allowed
    assert decision.source == PermissionSource.DIRECT


@pytest.mark.asyncio
async def test_role_grant(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("reporter", ["reports.basic"], display_name="Reporter"))
    await engine.assignments.assign("u1", "reporter", actor="owner-1")

    decision = await _evaluate(engine, user, "reports.basic")

    assert decision.allowed
    assert decision.source == PermissionSource.ROLE
    assert decision.detail == "role:Reporter"


@pytest.mark.asyncio
async def test_inherited_grant(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("lead", ["reports.basic"], display_name="Lead"))
    engine.uow.roles.add_role(make_role("junior", [], parent_id="lead", level=1))
    await engine.assignments.assign("u1", "junior", actor="owner-1")

    decision = await _evaluate(engine, user, "reports.basic")

    assert decision.allowed
    assert decision.source == PermissionSource.INHERITED
    assert decision.detail == "inherited:Lead"


@pytest.mark.asyncio
async def test_workspace_scoped_role_ignored_elsewhere(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("reporter", ["reports.basic"]))
    await engine.assignments.assign("u1", "reporter", actor="owner-1", workspace_id="ws-9")

    assert not (await _evaluate(engine, user, "reports.basic")).allowed


@pytest.mark.asyncio
async def test_new_assignment_visible_on_next_check(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("reporter", ["reports.basic"]))

    assert not (await _evaluate(engine, user, "reports.basic")).allowed
    await engine.assignments.assign("u1", "reporter", actor="owner-1")
    assert (await _evaluate(engine, user, "reports.basic")).allowed


@pytest.mark.asyncio
async def test_role_change_visible_on_next_check(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("lead", ["reports.basic"]))
    engine.uow.roles.add_role(make_role("junior", [], parent_id="lead", level=1))
    await engine.assignments.assign("u1", "junior", actor="owner-1")
    assert (await _evaluate(engine, user, "reports.basic")).allowed

    await engine.roles.update_role("lead", actor="admin", permissions=[])

    assert not (await _evaluate(engine, user, "reports.basic")).allowed


@pytest.mark.asyncio
async def test_expired_temporary_role_stops_granting(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("reporter", ["reports.basic"]))
    await engine.assignments.assign(
        "u1",
        "reporter",
        actor="owner-1",
        temporary=True,
        expires_at=engine.clock.now + timedelta(hours=1),
    )
    context = await engine.context_loader.load("u1")
    assert await engine.resolver.check(user, "reports.basic", context)

    engine.clock.advance(hours=2)

    assert not await engine.resolver.check(user, "reports.basic", context)


@pytest.mark.asyncio
async def test_cached_grant_ends_with_its_assignment(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("reporter", ["reports.basic"]))
    await engine.assignments.assign(
        "u1",
        "reporter",
        actor="owner-1",
        temporary=True,
        expires_at=engine.clock.now + timedelta(seconds=1),
    )
    context = await engine.context_loader.load("u1")
    assert await engine.resolver.check(user, "reports.basic", context)
    assert "reports.basic" in (await engine.resolver.resolve(user, context)).permissions

    engine.clock.advance(seconds=2)

    assert await engine.assignments.active_roles_for("u1", "ws-1") == frozenset()
    assert not await engine.resolver.check(user, "reports.basic", context)
    assert "reports.basic" not in (await engine.resolver.resolve(user, context)).permissions


@pytest.mark.asyncio
async def test_assignment_during_inflight_check_is_visible_next_time(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("reporter", ["reports.basic"]))
    context = await engine.context_loader.load("u1")

    pause = engine.uow.assignments.pause
    pause.arm()
    inflight = asyncio.create_task(engine.resolver.check(user, "reports.basic", context))
    await pause.reached.wait()

    await engine.assignments.assign("u1", "reporter", actor="owner-1")
    pause.release.set()

    assert await inflight is False
    assert await engine.resolver.check(user, "reports.basic", context)


@pytest.mark.asyncio
async def test_role_with_missing_parent_fails_resolution(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("orphan", ["reports.basic"], parent_id="gone", level=1))
    await engine.assignments.assign("u1", "orphan", actor="owner-1")
    with pytest.raises(PermissionResolutionError):
        await _evaluate(engine, user, "reports.basic")


@pytest.mark.asyncio
async def test_missing_feature_denies(engine: Engine) -> None:
    people = _pharmacy(engine, tier=PlanTier.BASIC)
    decision = await _evaluate(engine, people["pharmacist"], "clinical_intervention.assign")
    assert not decision.allowed
    assert decision.reason == "Missing required features: teamManagement"
    assert decision.detail == "workplace:Pharmacist"


@pytest.mark.asyncio
async def test_trial_bypasses_features_but_not_tier(engine: Engine) -> None:
    people = _pharmacy(
        engine,
        tier=PlanTier.BASIC,
        status=SubscriptionStatus.TRIAL,
        trial_end=NOW + timedelta(days=10),
    )
    pharmacist = people["pharmacist"]

    assert (await _evaluate(engine, pharmacist, "clinical_intervention.assign")).allowed

    tiered = await _evaluate(engine, pharmacist, "clinical_notes.search_advanced")
    assert not tiered.allowed
    assert tiered.reason == "Requires pro plan or higher"


@pytest.mark.asyncio
async def test_inactive_subscription_denies(engine: Engine) -> None:
    people = _pharmacy(engine, status=SubscriptionStatus.EXPIRED)
    decision = await _evaluate(engine, people["pharmacist"], "patient.read")
    assert not decision.allowed
    assert decision.reason == "Active subscription required"


@pytest.mark.asyncio
async def test_no_workspace_means_no_workspace_access(engine: Engine) -> None:
    user = User(id="loner", workplace_role=WorkplaceRole.PHARMACIST)
    decision = await engine.resolver.evaluate(user, "patient.read", WorkspaceContext.empty())
    assert not decision.allowed


@pytest.mark.parametrize(
    ("user", "reason"),
    [
        (
            User(id="pharm-1", workplace_role=WorkplaceRole.PHARMACIST, status=UserStatus.SUSPENDED),
            "User account is suspended",
        ),
        (
            User(id="pharm-1", workplace_role=WorkplaceRole.PHARMACIST, status=UserStatus.PENDING),
            "User account is pending activation",
        ),
        (
            User(
                id="pharm-1",
                workplace_role=WorkplaceRole.PHARMACIST,
                license_status=LicenseStatus.REJECTED,
            ),
            "Pharmacist license was rejected",
        ),
    ],
)
@pytest.mark.asyncio
async def test_blocked_user_status(engine: Engine, user: User, reason: str) -> None:
    _pharmacy(engine)
    decision = await _evaluate(engine, user, "patient.read")
    assert not decision.allowed
    assert decision.reason == reason


@pytest.mark.asyncio
async def test_store_failure_raises_resolution_error(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    await engine.uow.assignments.create(
        UserRoleAssignment(
            id="a1", user_id="u1", role_id="deleted-role", assigned_by="x", assigned_at=NOW
        )
    )
    with pytest.raises(PermissionResolutionError) as exc_info:
        await _evaluate(engine, user, "reports.basic")
    assert exc_info.value.action == "reports.basic"


@pytest.mark.asyncio
async def test_cyclic_roles_raise_resolution_error(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("a", [], parent_id="b"))
    engine.uow.roles.add_role(make_role("b", [], parent_id="a"))
    await engine.assignments.assign("u1", "a", actor="owner-1")
    with pytest.raises(PermissionResolutionError):
        await _evaluate(engine, user, "reports.basic")


@pytest.mark.asyncio
async def test_decisions_are_cached(engine: Engine) -> None:
    people = _pharmacy(engine)
    first = await _evaluate(engine, people["pharmacist"], "patient.read")
    second = await _evaluate(engine, people["pharmacist"], "patient.read")
    assert first is second
    assert engine.resolver.cache_stats()["hits"] >= 1


@pytest.mark.asyncio
async def test_resolve_all_permissions(engine: Engine) -> None:
    people = _pharmacy(engine, tier=PlanTier.BASIC)
    pharmacist = people["pharmacist"]
    pharmacist.set_permissions(["patient.delete"], ["medication.delete"])
    context = await engine.context_loader.load("pharm-1")

    result = await engine.resolver.resolve(pharmacist, context)

    assert result.allows("patient.create")
    assert not result.allows("adr.create")
    assert result.restricted["adr.create"] == "Requires pharmily plan or higher"
    assert result.sources["patient.delete"] == PermissionSource.DIRECT
    assert result.details["patient.create"] == "workplace:Pharmacist"
    assert "medication.delete" in result.denied_permissions
    assert "medication.delete" not in result.permissions
    assert "admin.users" not in result.permissions


@pytest.mark.asyncio
async def test_resolve_agrees_with_check(engine: Engine) -> None:
    people = _pharmacy(engine, tier=PlanTier.PRO)
    engine.uow.roles.add_role(make_role("lead", ["reports.basic"], display_name="Lead"))
    engine.uow.roles.add_role(make_role("junior", ["patient.read"], parent_id="lead", level=1))
    await engine.assignments.assign("tech-1", "junior", actor="owner-1")
    technician = people["technician"]
    context = await engine.context_loader.load("tech-1")

    result = await engine.resolver.resolve(technician, context)

    for action in engine.matrix.actions():
        decision = await engine.resolver.evaluate(technician, action, context)
        assert decision.allowed == result.allows(action), action
        if decision.allowed:
            assert decision.source == result.sources[action], action
    assert result.sources["reports.basic"] == PermissionSource.INHERITED
    assert result.sources["patient.read"] == PermissionSource.ROLE


@pytest.mark.asyncio
async def test_resolve_for_blocked_user_is_empty(engine: Engine) -> None:
    user = User(id="u1", status=UserStatus.SUSPENDED, denied_permissions=["patient.read"])
    result = await engine.resolver.resolve(user, WorkspaceContext.empty())
    assert result.permissions == frozenset()
    assert result.denied_permissions == {"patient.read"}


@pytest.mark.asyncio
async def test_explain_denial_suggests_related_permissions_and_roles(engine: Engine) -> None:
    people = _pharmacy(engine)
    engine.uow.roles.add_role(make_role("senior", ["patient.delete"], display_name="Senior"))
    context = await engine.context_loader.load("tech-1")

    decision = await engine.resolver.explain(people["technician"], "patient.delete", context)

    assert not decision.allowed
    assert "You have related permission: patient.read" in decision.suggestions
    assert "Role 'Senior' grants this permission" in decision.suggestions


@pytest.mark.asyncio
async def test_explain_allow_includes_inheritance_path(engine: Engine) -> None:
    add_tenant(engine.uow, "owner-1", member_ids=["u1"])
    user = engine.uow.users.add_user(User(id="u1"))
    engine.uow.roles.add_role(make_role("lead", ["reports.basic"]))
    engine.uow.roles.add_role(make_role("junior", [], parent_id="lead", level=1))
    await engine.assignments.assign("u1", "junior", actor="owner-1")
    context = await engine.context_loader.load("u1")

    decision = await engine.resolver.explain(user, "reports.basic", context)

    assert decision.allowed
    assert [r.id for r in decision.inheritance_path] == ["junior", "lead"]


@pytest.mark.asyncio
async def test_warm_fills_decision_cache(engine: Engine) -> None:
    people = _pharmacy(engine)
    context = await engine.context_loader.load("pharm-1")
    count = await engine.resolver.warm(
        people["pharmacist"], context, ["patient.read", "adr.create"]
    )
    assert count == 2
    assert len(engine.decision_cache) == 2
