"""
Pytest configuration and fixtures for launchpad tests
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from launchpad.config import settings
from launchpad.core.dependencies import get_auth_service
from launchpad.core.rate_limit import limiter
from launchpad.database.supabase_client import get_supabase
from launchpad.modules.auth.schemas import AuthUser, TeamInfo
from launchpad.modules.auth.service import clear_profile_cache
from launchpad.modules.jobs.schemas import JobType
from launchpad.modules.jobs.service import JobService
from launchpad.modules.provisioning.launch_worker import LAUNCH_STEPS
from launchpad.modules.tenants.schemas import TenantCreate
from launchpad.modules.tenants.service import TenantService
from tests.fakes import FakeSupabase

TEST_ENCRYPTION_SECRET = "0f" * 32
ADMIN_KEY = "test-admin-key"


@pytest.fixture(autouse=True)
def isolate_settings(monkeypatch):
    """Deterministic secrets and no rate limiting for every test."""
    monkeypatch.setattr(settings, "key_encryption_secret", TEST_ENCRYPTION_SECRET)
    monkeypatch.setattr(settings, "admin_api_key", ADMIN_KEY)
    monkeypatch.setattr(settings, "template_domain", "red-bricks.app")
    monkeypatch.setattr(settings, "vercel_token", None)
    monkeypatch.setattr(settings, "vercel_project_id", None)
    limiter.enabled = False
    clear_profile_cache()
    yield
    limiter.enabled = True


@pytest.fixture
def fake_db():
    return FakeSupabase()


@pytest.fixture
def admin_user():
    return AuthUser(id=1, name="Dana Agent", email="dana@example.com", team_id=7)


@pytest.fixture
def other_user():
    return AuthUser(id=2, name="Sam Other", email="sam@example.com", team_id=8)


@pytest.fixture
def team():
    return TeamInfo(id=7, name="Dana Realty", tier="pro", api_token="rb_team_token_123")


@pytest.fixture
def make_tenant(fake_db):
    """Insert a tenant; extra keyword arguments are written onto the row."""
    def _make(slug="acme", admin_email="dana@example.com", **fields):
        tenant = TenantService(fake_db).create_tenant(TenantCreate(
            team_id=7,
            slug=slug,
            display_name=f"{slug.title()} Homes",
            admin_email=admin_email,
        ))
        if fields:
            TenantService(fake_db).update_tenant(tenant.id, fields)
        return TenantService(fake_db).get_tenant_by_id(tenant.id)
    return _make


@pytest.fixture
def launch_job(fake_db, make_tenant):
    """A provisioning tenant with a fresh six-step launch job."""
    tenant = make_tenant()
    job = JobService(fake_db).create_job(tenant.id, JobType.LAUNCH, list(LAUNCH_STEPS))
    return tenant, job


@pytest.fixture
def auth_service(admin_user, team):
    service = MagicMock()
    service.get_profile.return_value = admin_user
    service.get_team_info.return_value = team
    return service


@pytest.fixture
def client(fake_db, auth_service):
    from launchpad.main import app

    app.dependency_overrides[get_supabase] = lambda: fake_db
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer test-token"}


@pytest.fixture
def admin_headers():
    return {"x-admin-key": ADMIN_KEY}
