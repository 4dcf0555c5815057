from supabase import Client
from fastapi import HTTPException
from launchpad.config import settings
from launchpad.modules.auth.schemas import AuthUser, TeamInfo
from launchpad.modules.jobs.schemas import JobType, TenantJobResponse
from launchpad.modules.jobs.service import JobService
from launchpad.modules.provisioning.launch_worker import LAUNCH_STEPS
from launchpad.modules.provisioning.schemas import LaunchRequest, JobStatusResponse, TenantSummary
from launchpad.modules.tenants.schemas import TenantCreate, TenantResponse
from launchpad.modules.tenants.service import TenantService
from typing import Tuple
import logging

logger = logging.getLogger(__name__)


class LaunchService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.tenants = TenantService(supabase)
        self.jobs = JobService(supabase)

    def create_launch(
        self,
        request: LaunchRequest,
        user: AuthUser,
        team: TeamInfo
    ) -> Tuple[TenantResponse, TenantJobResponse]:
        """
        Insert the provisioning tenant and its launch job.
        The tenant is removed again if the job tracker cannot be created.
        """
        tenant = self.tenants.create_tenant(TenantCreate(
            team_id=team.id,
            slug=request.slug,
            display_name=request.display_name,
            template=request.template,
            theme_preset=request.theme_preset,
            feature_flags=request.features,
            admin_email=user.email,
        ))

        try:
            job = self.jobs.create_job(tenant.id, JobType.LAUNCH, list(LAUNCH_STEPS))
        except Exception as e:
            logger.error(f"Failed to create launch job for tenant {tenant.id}: {str(e)}")
            self.tenants.delete_tenant(tenant.id)
            raise HTTPException(status_code=500, detail="Failed to create job tracker")

        logger.info(f"Launch accepted: tenant {tenant.id} ({tenant.slug}), job {job.id}, team {team.id}")
        return tenant, job

    def get_job_status(self, job: TenantJobResponse, tenant: TenantResponse) -> JobStatusResponse:
        return JobStatusResponse(
            job_id=job.id,
            status=job.status,
            steps=job.steps,
            error=job.error,
            tenant=TenantSummary(
                slug=tenant.slug,
                status=tenant.status,
                display_name=tenant.display_name,
                url=settings.site_url(tenant.slug),
            ),
        )
