from fastapi import APIRouter, Depends, HTTPException
from launchpad.database.supabase_client import get_supabase
from launchpad.core.dependencies import require_admin_key, ensure_uuid
from launchpad.modules.jobs import job_registry
from launchpad.modules.jobs.schemas import CancelJobResponse, TERMINAL_STATUSES
from launchpad.modules.jobs.service import JobService
from supabase import Client

router = APIRouter(prefix="/admin/jobs", tags=["admin"], dependencies=[Depends(require_admin_key)])


def get_job_service(supabase: Client = Depends(get_supabase)) -> JobService:
    return JobService(supabase)


@router.post("/{job_id}/cancel", response_model=CancelJobResponse)
def cancel_job(
    job_id: str,
    service: JobService = Depends(get_job_service)
):
    """
    Request cancellation of a running job.
    The pipeline stops before its next external call; the job and tenant are failed by the pipeline itself.
    """
    ensure_uuid(job_id, "job_id")
    job = service.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    if job.status in TERMINAL_STATUSES:
        raise HTTPException(status_code=400, detail=f"Job is already {job.status.value}")
    if not job_registry.cancel(job_id):
        raise HTTPException(status_code=404, detail="Job is not running in this process")
    return CancelJobResponse(job_id=job_id, cancelled=True, message="Cancellation requested")
