from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from launchpad.database.supabase_client import get_supabase
from launchpad.core.dependencies import (
    get_auth_service, get_current_token, get_current_user, ensure_uuid, is_tenant_admin
)
from launchpad.modules.auth.schemas import AuthUser
from launchpad.modules.auth.service import AuthService
from launchpad.modules.provisioning.schemas import LaunchRequest, LaunchResponse, JobStatusResponse
from launchpad.modules.provisioning.service import LaunchService
from launchpad.modules.provisioning.launch_worker import run_launch_pipeline
from supabase import Client

router = APIRouter(prefix="/launch", tags=["launch"])


def get_launch_service(supabase: Client = Depends(get_supabase)) -> LaunchService:
    return LaunchService(supabase)


@router.post("", response_model=LaunchResponse, status_code=status.HTTP_202_ACCEPTED)
def launch_site(
    request: LaunchRequest,
    background_tasks: BackgroundTasks,
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service),
    service: LaunchService = Depends(get_launch_service)
):
    """
    Start provisioning a new tenant site.
    Returns as soon as the tenant and job rows exist; poll /launch/status for progress.
    """
    user = auth_service.get_profile(token)
    team = auth_service.get_team_info(token)

    tenant, job = service.create_launch(request, user, team)

    background_tasks.add_task(
        run_launch_pipeline,
        tenant_id=tenant.id,
        job_id=job.id,
        request=request,
        team=team,
        admin_email=user.email,
        supabase=service.supabase,
    )
    return LaunchResponse(tenant_id=tenant.id, job_id=job.id)


@router.get("/status", response_model=JobStatusResponse)
def launch_status(
    job_id: str = Query(...),
    current_user: AuthUser = Depends(get_current_user),
    service: LaunchService = Depends(get_launch_service)
):
    """Poll a launch job. Jobs of tenants the caller does not administer are reported as missing."""
    ensure_uuid(job_id, "job_id")

    job = service.jobs.get_job(job_id)
    tenant = service.tenants.find_tenant(job.tenant_id) if job else None
    if job is None or not is_tenant_admin(tenant, current_user):
        raise HTTPException(status_code=404, detail="Job not found")

    return service.get_job_status(job, tenant)
