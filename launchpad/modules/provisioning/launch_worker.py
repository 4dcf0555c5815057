"""
Launch pipeline: drives one tenant from `provisioning` to `active`.

Runs after the launch request has returned (FastAPI BackgroundTasks), one
pipeline per job, and is observed only through the tenant_jobs row. Every
step is fatal on failure: the step is marked failed (or timeout), the job is
failed and the tenant suspended. Completed steps are not rolled back and the
job is never resumed; a created database or domain stays in place for
administrative cleanup. The only non-fatal failure is registration of an
optional custom domain.
"""
from dataclasses import dataclass
from typing import Callable, List, Optional
import logging

from supabase import Client

from launchpad.config import settings
from launchpad.core.exceptions import DeadlineExceeded, JobCancelled
from launchpad.database.supabase_client import SupabaseClient
from launchpad.modules.auth.schemas import TeamInfo
from launchpad.modules.domains.registrar import VercelDomainRegistrar
from launchpad.modules.domains.service import tenant_hostname
from launchpad.modules.jobs import job_registry
from launchpad.modules.jobs.cancellation import CancellationToken, StepDeadline
from launchpad.modules.jobs.schemas import JobStatus, StepStatus
from launchpad.modules.jobs.service import JobService
from launchpad.modules.keys.schemas import KeyEntry, KeyType
from launchpad.modules.keys.service import KeyVault
from launchpad.modules.provisioning.schemas import LaunchRequest, ProvisionedDatabase, SeedData
from launchpad.modules.provisioning.supabase_project import DatabaseProvisioner
from launchpad.modules.tenants.schemas import SslStatus, TenantStatus
from launchpad.modules.tenants.service import TenantService

logger = logging.getLogger(__name__)

LAUNCH_STEPS = (
    "Creating database",
    "Running migrations",
    "Seeding configuration",
    "Configuring domain",
    "Storing credentials",
    "Activating site",
)


def _error_text(error: Exception, default: Optional[str] = None) -> str:
    # postgrest APIError carries its text in .message, not in args
    return getattr(error, "message", None) or str(error) or default or type(error).__name__


@dataclass
class LaunchContext:
    tenant_id: str
    job_id: str
    request: LaunchRequest
    team: TeamInfo
    admin_email: str
    database: Optional[ProvisionedDatabase] = None


@dataclass(frozen=True)
class PipelineStep:
    name: str
    run: Callable[[LaunchContext, StepDeadline], None]
    failure_prefix: str


class LaunchPipeline:
    def __init__(
        self,
        supabase: Client,
        provisioner: Optional[DatabaseProvisioner] = None,
        registrar: Optional[VercelDomainRegistrar] = None,
        vault: Optional[KeyVault] = None,
        token: Optional[CancellationToken] = None,
        step_timeout: Optional[float] = None,
    ):
        self.jobs = JobService(supabase)
        self.tenants = TenantService(supabase)
        self.provisioner = provisioner or DatabaseProvisioner()
        self.registrar = registrar or VercelDomainRegistrar()
        self.vault = vault or KeyVault(supabase)
        self.token = token or CancellationToken()
        self.step_timeout = step_timeout if step_timeout is not None else settings.step_timeout_seconds

        self.steps: List[PipelineStep] = [
            PipelineStep(LAUNCH_STEPS[0], self._create_database, "Database creation failed"),
            PipelineStep(LAUNCH_STEPS[1], self._run_migrations, "Migration failed"),
            PipelineStep(LAUNCH_STEPS[2], self._seed_configuration, "Seeding configuration failed"),
            PipelineStep(LAUNCH_STEPS[3], self._configure_domain, "Domain configuration failed"),
            PipelineStep(LAUNCH_STEPS[4], self._store_credentials, "Failed to store credentials"),
            PipelineStep(LAUNCH_STEPS[5], self._activate, "Activation failed"),
        ]

    def run(self, ctx: LaunchContext) -> JobStatus:
        """Run every step in order; returns the job's terminal status."""
        current_step: Optional[int] = None
        try:
            for index, step in enumerate(self.steps):
                current_step = index
                self.jobs.update_step(ctx.job_id, index, StepStatus.RUNNING)
                logger.info(f"[job {ctx.job_id}] step {index} '{step.name}' started for tenant {ctx.tenant_id}")

                deadline = StepDeadline(self.step_timeout, self.token)
                try:
                    deadline.check()
                    step.run(ctx, deadline)
                except DeadlineExceeded as e:
                    self._abort(ctx, index, StepStatus.TIMEOUT, str(e), f"{step.name} timed out: {str(e)}")
                    return JobStatus.TIMEOUT
                except JobCancelled as e:
                    self._abort(ctx, index, StepStatus.FAILED, str(e), str(e))
                    return JobStatus.FAILED
                except Exception as e:
                    message = _error_text(e)
                    logger.error(f"[job {ctx.job_id}] step {index} '{step.name}' failed: {message}")
                    self._abort(ctx, index, StepStatus.FAILED, message, f"{step.failure_prefix}: {message}")
                    return JobStatus.FAILED

                self.jobs.update_step(ctx.job_id, index, StepStatus.COMPLETED)
                logger.info(f"[job {ctx.job_id}] step {index} '{step.name}' completed")

            self.jobs.complete_job(ctx.job_id)
            logger.info(f"Launch job {ctx.job_id} completed; tenant {ctx.tenant_id} is live")
            return JobStatus.COMPLETED
        except Exception as e:
            # Bookkeeping itself failed; still never leave the job running
            logger.exception(f"Launch pipeline error for job {ctx.job_id}: {str(e)}")
            message = _error_text(e, "Unknown error during launch")
            if current_step is not None:
                try:
                    self.jobs.update_step(ctx.job_id, current_step, StepStatus.FAILED, message)
                except Exception as step_err:
                    logger.error(f"Failed to mark step {current_step} of job {ctx.job_id} failed: {step_err}")
            try:
                self.jobs.fail_job(ctx.job_id, ctx.tenant_id, message)
            except Exception as fail_err:
                logger.error(f"Failed to mark job {ctx.job_id} failed: {fail_err}")
            return JobStatus.FAILED

    def _abort(self, ctx: LaunchContext, index: int, step_status: StepStatus, step_error: str, job_error: str) -> None:
        self.jobs.update_step(ctx.job_id, index, step_status, step_error)
        job_status = JobStatus.TIMEOUT if step_status == StepStatus.TIMEOUT else JobStatus.FAILED
        self.jobs.fail_job(ctx.job_id, ctx.tenant_id, job_error, job_status)

    # ── Steps ──────────────────────────────────────────────

    def _create_database(self, ctx: LaunchContext, deadline: StepDeadline) -> None:
        ctx.database = self.provisioner.create_database(ctx.request.slug, deadline)
        self.tenants.set_project_ref(ctx.tenant_id, ctx.database.ref)

    def _run_migrations(self, ctx: LaunchContext, deadline: StepDeadline) -> None:
        applied = self.provisioner.run_migrations(ctx.database.ref, deadline)
        # Watermark for future upgrade jobs
        if applied:
            self.tenants.set_schema_version(ctx.tenant_id, applied[-1].version)

    def _seed_configuration(self, ctx: LaunchContext, deadline: StepDeadline) -> None:
        self.provisioner.seed_database(
            ctx.database.ref,
            ctx.database.api_url,
            ctx.database.service_role_key,
            SeedData(
                site_name=ctx.request.display_name,
                theme_preset=ctx.request.theme_preset,
                admin_email=ctx.admin_email,
                features=ctx.request.features,
            ),
            deadline,
        )

    def _configure_domain(self, ctx: LaunchContext, deadline: StepDeadline) -> None:
        """
        The platform subdomain is mandatory and is recorded as primary first.
        A custom domain is attempted after it; any failure other than
        cancellation (a timeout included) is recorded on its row and never
        fails the step. A registered custom domain takes over as primary.
        """
        hostname = tenant_hostname(ctx.request.slug)
        registration = self.registrar.add_domain(hostname, deadline)
        if not registration.success:
            raise RuntimeError(registration.error or f"Failed to add domain {hostname}")

        self.tenants.add_domain(
            ctx.tenant_id,
            hostname,
            is_primary=True,
            ssl_status=SslStatus.ACTIVE if registration.verified else SslStatus.PENDING,
        )

        custom_domain = ctx.request.custom_domain
        if not custom_domain:
            return

        custom_registration = None
        try:
            custom_registration = self.registrar.add_domain(custom_domain, deadline)
        except JobCancelled:
            raise
        except Exception as e:
            logger.warning(f"Custom domain {custom_domain} registration error for tenant {ctx.tenant_id}: {e}")

        custom_ok = custom_registration is not None and custom_registration.success
        if custom_ok:
            ssl_status = SslStatus.ACTIVE if custom_registration.verified else SslStatus.PENDING
        else:
            ssl_status = SslStatus.FAILED
            logger.warning(
                f"Custom domain {custom_domain} not registered for tenant {ctx.tenant_id}: "
                f"{custom_registration.error if custom_registration else 'registration error'}"
            )

        try:
            self.tenants.add_domain(ctx.tenant_id, custom_domain, is_primary=custom_ok, ssl_status=ssl_status)
            if custom_ok:
                self.tenants.set_primary_domain(ctx.tenant_id, custom_domain)
        except Exception as e:
            if custom_ok:
                # Keep exactly one primary: the subdomain
                self.tenants.set_primary_domain(ctx.tenant_id, hostname)
            logger.warning(f"Could not record custom domain {custom_domain} for tenant {ctx.tenant_id}: {e}")

    def _store_credentials(self, ctx: LaunchContext, deadline: StepDeadline) -> None:
        deadline.check()
        self.vault.store_keys(ctx.tenant_id, build_key_entries(ctx))

    def _activate(self, ctx: LaunchContext, deadline: StepDeadline) -> None:
        self.tenants.set_status(ctx.tenant_id, TenantStatus.ACTIVE)


def build_key_entries(ctx: LaunchContext) -> List[KeyEntry]:
    """
    Credentials to store for a freshly provisioned tenant.

    Database credentials and the team token are issued by the platform and
    stored as validated; user-supplied provider keys are stored unvalidated
    and only included when supplied.
    """
    request = ctx.request
    entries = [
        KeyEntry(key_type=KeyType.SUPABASE_URL.value, value=ctx.database.api_url, validated=True),
        KeyEntry(key_type=KeyType.SUPABASE_ANON_KEY.value, value=ctx.database.anon_key, validated=True),
        KeyEntry(key_type=KeyType.SUPABASE_SERVICE_ROLE.value, value=ctx.database.service_role_key, validated=True),
    ]
    if ctx.team.api_token:
        entries.append(KeyEntry(key_type=KeyType.REDBRICKS_TOKEN.value, value=ctx.team.api_token, validated=True))
    if request.google_maps_key:
        entries.append(KeyEntry(key_type=KeyType.GOOGLE_MAPS.value, value=request.google_maps_key))
    if request.effective_ai_key:
        entries.append(KeyEntry(key_type=request.ai_provider.value, value=request.effective_ai_key))
    if request.effective_email_key:
        entries.append(KeyEntry(key_type=request.email_provider.value, value=request.effective_email_key))
    return entries


def run_launch_pipeline(
    tenant_id: str,
    job_id: str,
    request: LaunchRequest,
    team: TeamInfo,
    admin_email: str,
    supabase: Optional[Client] = None,
) -> None:
    """
    Background entry point for one launch job.

    Uses the platform client handed over by the route, else the service-role
    client; registers the job for cancellation while running. If the pipeline
    cannot start, the job is failed so it never stays running. A job already
    registered is left alone: the pipeline driving it owns its state.
    """
    try:
        token = job_registry.register(job_id)
    except RuntimeError as e:
        logger.error(f"Refusing to start launch pipeline: {e}")
        return

    client = supabase
    try:
        if client is None:
            client = SupabaseClient.get_client()
        pipeline = LaunchPipeline(client, token=token)
        pipeline.run(LaunchContext(
            tenant_id=tenant_id,
            job_id=job_id,
            request=request,
            team=team,
            admin_email=admin_email,
        ))
    except Exception as e:
        logger.exception(f"Launch pipeline could not start for job {job_id}: {str(e)}")
        if client is not None:
            try:
                JobService(client).fail_job(job_id, tenant_id, f"Launch could not start: {_error_text(e)}")
            except Exception as fail_err:
                logger.error(f"Failed to mark job {job_id} failed: {fail_err}")
        else:
            logger.error(f"Job {job_id} left running: no platform database client available")
    finally:
        job_registry.unregister(job_id)
