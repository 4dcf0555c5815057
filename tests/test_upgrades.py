"""
Tests for tenant schema upgrades and feature-flag propagation
"""

from unittest.mock import MagicMock

import pytest

from launchpad.core.exceptions import DeadlineExceeded, ProvisioningError
from launchpad.modules.jobs.schemas import JobStatus, JobType, StepStatus
from launchpad.modules.jobs.service import JobService
from launchpad.modules.keys.schemas import KeyEntry
from launchpad.modules.keys.service import KeyVault
from launchpad.modules.upgrades.schemas import UpgradeOutcome
from launchpad.modules.upgrades.service import TenantUpgradeService

V1 = "20250209093900"
V2 = "20250210121500"
V3 = "20250211070000"


@pytest.fixture
def migrations_dir(tmp_path):
    for version, name in ((V1, "initial"), (V2, "appointments"), (V3, "chat")):
        (tmp_path / f"{version}_{name}.sql").write_text(f"-- {name}")
    return tmp_path


@pytest.fixture
def provisioner():
    return MagicMock()


@pytest.fixture
def vault(fake_db):
    return KeyVault(fake_db, encrypt_fn=lambda v: f"enc:{v}", decrypt_fn=lambda v: v[len("enc:"):])


@pytest.fixture
def service(fake_db, provisioner, vault, migrations_dir):
    return TenantUpgradeService(fake_db, provisioner=provisioner, vault=vault, migrations_dir=migrations_dir)


@pytest.fixture
def live_tenant(make_tenant):
    def _make(slug="acme", schema_version=V1, **fields):
        fields.setdefault("status", "active")
        fields.setdefault("supabase_project_ref", f"ref-{slug}")
        return make_tenant(slug=slug, schema_version=schema_version, **fields)
    return _make


class TestUpgradeTenant:
    """Test running pending migrations on one tenant"""

    def test_runs_only_newer_migrations(self, fake_db, service, provisioner, live_tenant):
        tenant = live_tenant(schema_version=V1)

        result = service.upgrade_tenant(tenant.id)

        assert result.status == UpgradeOutcome.UPGRADED
        assert result.previous_version == V1
        assert result.new_version == V3
        assert result.migrations_run == 2
        assert [c.args[1] for c in provisioner.run_sql.call_args_list] == ["-- appointments", "-- chat"]
        assert all(c.args[0] == "ref-acme" for c in provisioner.run_sql.call_args_list)
        assert fake_db.row("tenants", id=tenant.id)["schema_version"] == V3

    def test_records_an_upgrade_job(self, fake_db, service, live_tenant):
        tenant = live_tenant(schema_version=V1)

        result = service.upgrade_tenant(tenant.id)

        job = JobService(fake_db).get_job(result.job_id)
        assert job.job_type == JobType.UPGRADE
        assert job.status == JobStatus.COMPLETED
        assert [s.name for s in job.steps] == [f"{V2}_appointments.sql", f"{V3}_chat.sql"]
        assert all(s.status == StepStatus.COMPLETED for s in job.steps)

    def test_failure_keeps_watermark_at_last_applied(self, fake_db, service, provisioner, live_tenant):
        tenant = live_tenant(schema_version=None)
        provisioner.run_sql.side_effect = [None, ProvisioningError("SQL execution failed (400): boom"), None]

        result = service.upgrade_tenant(tenant.id)

        assert result.status == UpgradeOutcome.FAILED
        assert result.new_version == V1
        assert result.migrations_run == 1
        assert result.error == f"Migration {V2}_appointments.sql failed: SQL execution failed (400): boom"
        assert provisioner.run_sql.call_count == 2
        row = fake_db.row("tenants", id=tenant.id)
        assert row["schema_version"] == V1
        assert row["status"] == "active"

        job = JobService(fake_db).get_job(result.job_id)
        assert job.status == JobStatus.FAILED
        assert [s.status for s in job.steps] == [StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.PENDING]

    def test_timeout_marks_job_timed_out(self, fake_db, service, provisioner, live_tenant):
        tenant = live_tenant(schema_version=V2)
        provisioner.run_sql.side_effect = DeadlineExceeded("Step exceeded its 300s deadline")

        result = service.upgrade_tenant(tenant.id)

        assert result.status == UpgradeOutcome.FAILED
        job = JobService(fake_db).get_job(result.job_id)
        assert job.status == JobStatus.TIMEOUT
        assert job.steps[0].status == StepStatus.TIMEOUT
        assert fake_db.row("tenants", id=tenant.id)["status"] == "active"

    def test_up_to_date_is_skipped(self, fake_db, service, provisioner, live_tenant):
        tenant = live_tenant(schema_version=V3)

        result = service.upgrade_tenant(tenant.id)

        assert result.status == UpgradeOutcome.SKIPPED
        assert result.job_id is None
        provisioner.run_sql.assert_not_called()
        assert fake_db.rows("tenant_jobs") == []

    def test_tenant_without_database(self, service, provisioner, make_tenant):
        tenant = make_tenant()

        result = service.upgrade_tenant(tenant.id)

        assert result.status == UpgradeOutcome.FAILED
        assert "no Supabase project ref" in result.error
        provisioner.run_sql.assert_not_called()

    def test_unknown_tenant(self, service):
        result = service.upgrade_tenant("00000000-0000-0000-0000-000000000000")

        assert result.status == UpgradeOutcome.FAILED
        assert result.error == "Tenant not found"


class TestUpgradeAll:
    """Test the sequential batch upgrade"""

    def test_counts_each_outcome(self, service, provisioner, live_tenant, make_tenant):
        live_tenant(slug="alpha", schema_version=V1)
        live_tenant(slug="bravo", schema_version=V3)
        live_tenant(slug="charlie", schema_version=V2)
        make_tenant(slug="draft")
        live_tenant(slug="paused", status="suspended")

        def run_sql(ref, sql, deadline=None):
            if ref == "ref-charlie":
                raise ProvisioningError("boom")

        provisioner.run_sql.side_effect = run_sql

        batch = service.upgrade_all_tenants()

        assert batch.latest_version == V3
        assert (batch.upgraded, batch.skipped, batch.failed) == (1, 1, 1)
        assert sorted(d.slug for d in batch.details) == ["alpha", "bravo", "charlie"]

    def test_status_lists_pending_per_tenant(self, service, live_tenant):
        live_tenant(slug="zulu", schema_version=None)
        live_tenant(slug="alpha", schema_version=V2)

        status = service.upgrade_status()

        assert status.latest_version == V3
        assert status.total_migrations == 3
        assert [(t.slug, t.pending_migrations) for t in status.tenants] == [("alpha", 1), ("zulu", 3)]

    def test_tenant_detail(self, service, live_tenant):
        tenant = live_tenant(schema_version=V1)

        detail = service.tenant_upgrade_detail(tenant.id)

        assert detail.tenant.has_database is True
        assert detail.pending_migration_files == [f"{V2}_appointments.sql", f"{V3}_chat.sql"]
        assert detail.is_up_to_date is False


class TestFeatureFlags:
    """Test add-only propagation of default feature flags"""

    def test_existing_values_are_never_overwritten(self, fake_db, service, make_tenant):
        tenant = make_tenant(feature_flags={"blog": False})

        result = service.propagate_feature_flags(tenant.id, {"blog": True, "chat": True})

        assert result.added == ["chat"]
        assert result.skipped == ["blog"]
        assert fake_db.row("tenants", id=tenant.id)["feature_flags"] == {"blog": False, "chat": True}

    def test_nothing_to_add_writes_nothing(self, fake_db, service, provisioner, live_tenant):
        tenant = live_tenant(feature_flags={"blog": True})
        calls_before = len(fake_db.calls)

        result = service.propagate_feature_flags(tenant.id, {"blog": False})

        assert result.added == []
        assert ("tenants", "update") not in fake_db.calls[calls_before:]
        provisioner.write_site_features.assert_not_called()

    def test_writes_tenant_site_config_with_decrypted_credentials(self, service, provisioner, vault, live_tenant):
        tenant = live_tenant(feature_flags={"blog": True})
        vault.store_keys(tenant.id, [
            KeyEntry(key_type="supabase_url", value="https://ref-acme.supabase.co", validated=True),
            KeyEntry(key_type="supabase_service_role", value="service-key", validated=True),
        ])

        result = service.propagate_feature_flags(tenant.id, {"chat": False})

        assert result.error is None
        provisioner.write_site_features.assert_called_once_with(
            "https://ref-acme.supabase.co", "service-key", {"blog": True, "chat": False}
        )

    def test_missing_credentials_is_reported(self, fake_db, service, provisioner, live_tenant):
        tenant = live_tenant()

        result = service.propagate_feature_flags(tenant.id, {"chat": True})

        assert result.added == ["chat"]
        assert result.error == "Platform DB updated but tenant site_config failed: Missing Supabase credentials for tenant"
        assert fake_db.row("tenants", id=tenant.id)["feature_flags"] == {"chat": True}
        provisioner.write_site_features.assert_not_called()

    def test_platform_write_failure(self, fake_db, service, make_tenant):
        tenant = make_tenant()
        fake_db.fail("tenants", "update")

        result = service.propagate_feature_flags(tenant.id, {"chat": True})

        assert result.added == []
        assert result.error.startswith("Failed to update platform DB")

    def test_to_all_active_tenants(self, service, make_tenant):
        make_tenant(slug="alpha", status="active", feature_flags={"chat": True})
        make_tenant(slug="bravo", status="active")
        make_tenant(slug="draft")

        summary = service.propagate_feature_flags_to_all({"chat": False, "blog": True})

        assert summary.total_tenants == 2
        assert summary.tenants_updated == 2
        assert summary.total_flags_added == 3
        assert summary.errors == []
        assert summary.message == "Propagated 2 flag(s) to 2 tenant(s)"
