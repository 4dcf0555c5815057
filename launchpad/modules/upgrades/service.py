"""
Schema upgrades and feature-flag propagation for already-launched tenants.

A tenant's schema_version is the version of the last template migration
applied to its database. Upgrades run only the newer migrations, in order,
advancing the watermark after each one so a failure leaves it at the last
migration that actually applied. Upgrade failures fail the upgrade job but
never suspend the tenant: the site keeps serving on the old schema.
"""
from pathlib import Path
from supabase import Client
from launchpad.config import settings
from launchpad.core.exceptions import DeadlineExceeded
from launchpad.modules.jobs.cancellation import StepDeadline
from launchpad.modules.jobs.schemas import JobType, JobStatus, StepStatus
from launchpad.modules.jobs.service import JobService
from launchpad.modules.keys.schemas import KeyType
from launchpad.modules.keys.service import KeyVault
from launchpad.modules.provisioning.migrations import (
    available_migrations, migrations_since, latest_migration_version
)
from launchpad.modules.provisioning.supabase_project import DatabaseProvisioner
from launchpad.modules.tenants.schemas import TenantStatus
from launchpad.modules.tenants.service import TenantService
from launchpad.modules.upgrades.schemas import (
    UpgradeOutcome, TenantUpgradeResult, BatchUpgradeResult, TenantSchemaState,
    UpgradeStatusResponse, TenantUpgradeInfo, TenantUpgradeDetail,
    FlagPropagationResult, FlagPropagationError, FlagPropagationSummary,
)
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)


class TenantUpgradeService:
    def __init__(
        self,
        supabase: Client,
        provisioner: Optional[DatabaseProvisioner] = None,
        vault: Optional[KeyVault] = None,
        migrations_dir: Optional[Path] = None,
        step_timeout: Optional[float] = None,
    ):
        self.tenants = TenantService(supabase)
        self.jobs = JobService(supabase)
        self.provisioner = provisioner or DatabaseProvisioner()
        self.vault = vault or KeyVault(supabase)
        self.migrations_dir = migrations_dir
        self.step_timeout = step_timeout if step_timeout is not None else settings.step_timeout_seconds

    # ── Schema upgrades ────────────────────────────────────

    def upgrade_tenant(self, tenant_id: str) -> TenantUpgradeResult:
        tenant = self.tenants.find_tenant(tenant_id)
        if tenant is None:
            return TenantUpgradeResult(
                tenant_id=tenant_id,
                slug="unknown",
                status=UpgradeOutcome.FAILED,
                error="Tenant not found",
            )

        if not tenant.supabase_project_ref:
            return TenantUpgradeResult(
                tenant_id=tenant_id,
                slug=tenant.slug,
                previous_version=tenant.schema_version,
                new_version=tenant.schema_version,
                status=UpgradeOutcome.FAILED,
                error="Tenant has no Supabase project ref; it may still be provisioning",
            )

        pending = migrations_since(tenant.schema_version, self.migrations_dir)
        if not pending:
            return TenantUpgradeResult(
                tenant_id=tenant_id,
                slug=tenant.slug,
                previous_version=tenant.schema_version,
                new_version=tenant.schema_version,
                status=UpgradeOutcome.SKIPPED,
            )

        job = self.jobs.create_job(tenant_id, JobType.UPGRADE, [m.filename for m in pending])
        logger.info(f"Upgrading tenant {tenant.slug}: {len(pending)} migration(s), job {job.id}")

        result = TenantUpgradeResult(
            tenant_id=tenant_id,
            slug=tenant.slug,
            previous_version=tenant.schema_version,
            new_version=tenant.schema_version,
            status=UpgradeOutcome.UPGRADED,
            job_id=job.id,
        )

        for index, migration in enumerate(pending):
            self.jobs.update_step(job.id, index, StepStatus.RUNNING)
            try:
                self.provisioner.run_sql(
                    tenant.supabase_project_ref,
                    migration.read_sql(),
                    StepDeadline(self.step_timeout),
                )
            except DeadlineExceeded as e:
                message = f"Migration {migration.filename} timed out: {str(e)}"
                self.jobs.update_step(job.id, index, StepStatus.TIMEOUT, str(e))
                self.jobs.mark_failed(job.id, message, JobStatus.TIMEOUT)
                return self._failed(result, message)
            except Exception as e:
                message = f"Migration {migration.filename} failed: {str(e)}"
                self.jobs.update_step(job.id, index, StepStatus.FAILED, str(e))
                self.jobs.mark_failed(job.id, message)
                return self._failed(result, message)

            self.tenants.set_schema_version(tenant_id, migration.version)
            self.jobs.update_step(job.id, index, StepStatus.COMPLETED)
            result.new_version = migration.version
            result.migrations_run += 1

        self.jobs.complete_job(job.id)
        logger.info(f"Tenant {tenant.slug} upgraded to {result.new_version}")
        return result

    def _failed(self, result: TenantUpgradeResult, message: str) -> TenantUpgradeResult:
        logger.error(f"Upgrade of tenant {result.slug} failed at {result.new_version}: {message}")
        result.status = UpgradeOutcome.FAILED
        result.error = message
        return result

    def upgrade_all_tenants(self) -> BatchUpgradeResult:
        """Sequentially upgrade every active tenant that has a database."""
        batch = BatchUpgradeResult(latest_version=latest_migration_version(self.migrations_dir))
        tenants = self.tenants.list_tenants(status=TenantStatus.ACTIVE, with_database=True)

        for index, tenant in enumerate(tenants):
            result = self.upgrade_tenant(tenant.id)
            if result.status == UpgradeOutcome.UPGRADED:
                batch.upgraded += 1
            elif result.status == UpgradeOutcome.SKIPPED:
                batch.skipped += 1
            else:
                batch.failed += 1
            batch.details.append(result)
            logger.info(f"[{index + 1}/{len(tenants)}] {tenant.slug}: {result.status.value}")

        return batch

    def upgrade_status(self) -> UpgradeStatusResponse:
        all_migrations = available_migrations(self.migrations_dir)
        tenants = self.tenants.list_tenants(status=TenantStatus.ACTIVE, with_database=True, order_by="slug")
        return UpgradeStatusResponse(
            latest_version=all_migrations[-1].version if all_migrations else None,
            total_migrations=len(all_migrations),
            tenants=[
                TenantSchemaState(
                    id=t.id,
                    slug=t.slug,
                    schema_version=t.schema_version,
                    pending_migrations=len(migrations_since(t.schema_version, self.migrations_dir)),
                    status=t.status,
                )
                for t in tenants
            ],
        )

    def tenant_upgrade_detail(self, tenant_id: str) -> TenantUpgradeDetail:
        tenant = self.tenants.get_tenant_by_id(tenant_id)
        pending = migrations_since(tenant.schema_version, self.migrations_dir)
        return TenantUpgradeDetail(
            tenant=TenantUpgradeInfo(
                id=tenant.id,
                slug=tenant.slug,
                display_name=tenant.display_name,
                status=tenant.status,
                schema_version=tenant.schema_version,
                has_database=bool(tenant.supabase_project_ref),
                created_at=tenant.created_at,
            ),
            latest_version=latest_migration_version(self.migrations_dir),
            pending_migrations=len(pending),
            pending_migration_files=[m.filename for m in pending],
            is_up_to_date=not pending,
        )

    # ── Feature flags ──────────────────────────────────────

    def propagate_feature_flags(self, tenant_id: str, defaults: Dict[str, bool]) -> FlagPropagationResult:
        """
        Add flags the tenant does not define yet. Existing values are never
        overwritten, whatever the default says.
        """
        tenant = self.tenants.find_tenant(tenant_id)
        if tenant is None:
            return FlagPropagationResult(error="Tenant not found")

        existing = tenant.feature_flags or {}
        merged = dict(existing)
        result = FlagPropagationResult()
        for flag, value in defaults.items():
            if flag in existing:
                result.skipped.append(flag)
            else:
                merged[flag] = value
                result.added.append(flag)

        if not result.added:
            return result

        try:
            self.tenants.update_tenant(tenant_id, {"feature_flags": merged})
        except Exception as e:
            logger.error(f"Failed to update feature flags for tenant {tenant_id}: {e}")
            return FlagPropagationResult(skipped=result.skipped, error=f"Failed to update platform DB: {str(e)}")

        if tenant.supabase_project_ref:
            try:
                self._write_tenant_features(tenant_id, merged)
            except Exception as e:
                logger.error(f"Tenant {tenant.slug} site_config not updated: {e}")
                result.error = f"Platform DB updated but tenant site_config failed: {str(e)}"

        return result

    def _write_tenant_features(self, tenant_id: str, features: Dict[str, bool]) -> None:
        url_kind = KeyType.SUPABASE_URL.value
        service_kind = KeyType.SUPABASE_SERVICE_ROLE.value
        keys = self.vault.get_decrypted_keys(tenant_id, [url_kind, service_kind])
        if url_kind not in keys or service_kind not in keys:
            raise RuntimeError("Missing Supabase credentials for tenant")
        self.provisioner.write_site_features(keys[url_kind], keys[service_kind], features)

    def propagate_feature_flags_to_all(self, defaults: Dict[str, bool]) -> FlagPropagationSummary:
        tenants = self.tenants.list_tenants(status=TenantStatus.ACTIVE)
        updated = 0
        flags_added = 0
        errors = []

        for tenant in tenants:
            result = self.propagate_feature_flags(tenant.id, defaults)
            if result.error:
                errors.append(FlagPropagationError(tenant_id=tenant.id, slug=tenant.slug, error=result.error))
            if result.added:
                updated += 1
                flags_added += len(result.added)

        logger.info(f"Propagated {len(defaults)} flag(s) to {updated}/{len(tenants)} tenant(s)")
        return FlagPropagationSummary(
            message=f"Propagated {len(defaults)} flag(s) to {updated} tenant(s)",
            total_tenants=len(tenants),
            tenants_updated=updated,
            total_flags_added=flags_added,
            errors=errors,
        )
