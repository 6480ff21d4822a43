"""Fixtures for API tests."""

import falcon.asgi
import pytest
from falcon.testing import TestClient

from pharmaguard.config import Settings
from pharmaguard.domain.entities import User
from pharmaguard.domain.value_objects import PlanTier, SystemRole, WorkplaceRole
from pharmaguard.interfaces.api.app import create_app
from pharmaguard.interfaces.api.middleware.auth import AuthMiddleware
from pharmaguard.main import Components, build_components

from tests.conftest import FakeUnitOfWork, add_tenant, make_role, shared_factory


@pytest.fixture
def api_uow() -> FakeUnitOfWork:
    """Network-tier pharmacy: owner-1 owns ws-1, tech-1 works there, admin-1 is super admin."""
    uow = FakeUnitOfWork()
    uow.users.add_user(User(id="owner-1", system_role=SystemRole.OWNER))
    uow.users.add_user(User(id="tech-1", workplace_role=WorkplaceRole.TECHNICIAN))
    uow.users.add_user(User(id="admin-1", system_role=SystemRole.SUPER_ADMIN))
    add_tenant(uow, "owner-1", member_ids=["tech-1"], tier=PlanTier.NETWORK)
    uow.roles.add_role(make_role("reporter", ["reports.basic"], display_name="Reporter"))
    uow.roles.add_role(
        make_role("senior", ["reports.advanced"], parent_id="reporter", level=1, display_name="Senior")
    )
    return uow


@pytest.fixture
def components(api_uow: FakeUnitOfWork) -> Components:
    return build_components(shared_factory(api_uow), Settings())


@pytest.fixture
def app(components: Components) -> falcon.asgi.App:
    """Falcon ASGI app; callers identify themselves with X-User-Id."""
    return create_app(components, middleware=[AuthMiddleware(trust_user_header=True)])


@pytest.fixture
def client(app: falcon.asgi.App) -> TestClient:
    """Falcon ASGI test client."""
    return TestClient(app)
