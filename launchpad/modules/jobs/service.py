from supabase import Client
from launchpad.modules.jobs.schemas import (
    JobType, JobStatus, StepStatus, TenantJobStep, TenantJobResponse, TERMINAL_STATUSES, status_rank
)
from launchpad.modules.tenants.schemas import TenantStatus
from typing import List, Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobService:
    """Persisted state machine for one provisioning run (tenant_jobs row)."""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_job(self, tenant_id: str, job_type: JobType, step_names: List[str]) -> TenantJobResponse:
        """Create a running job with every step pending."""
        steps = [TenantJobStep(name=name).model_dump(mode="json", exclude_none=True) for name in step_names]
        result = self.supabase.table("tenant_jobs").insert({
            "tenant_id": tenant_id,
            "job_type": JobType(job_type).value,
            "status": JobStatus.RUNNING.value,
            "steps": steps,
        }).execute()

        if not result.data:
            raise RuntimeError("Failed to create job tracker")
        return TenantJobResponse(**result.data[0])

    def get_job(self, job_id: str) -> Optional[TenantJobResponse]:
        result = self.supabase.table("tenant_jobs")\
            .select("*")\
            .eq("id", job_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            return None
        return TenantJobResponse(**result.data)

    def update_step(
        self,
        job_id: str,
        index: int,
        status: StepStatus,
        error_message: Optional[str] = None
    ) -> None:
        """
        Re-read the steps array, change one entry and write the whole array back.

        started_at is stamped on entering running, completed_at on entering any
        terminal status. A step never moves back to an earlier status.
        """
        status = StepStatus(status)
        result = self.supabase.table("tenant_jobs")\
            .select("steps")\
            .eq("id", job_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            logger.warning(f"Job {job_id} not found while updating step {index}")
            return

        steps = [TenantJobStep(**s) for s in (result.data.get("steps") or [])]
        if index < 0 or index >= len(steps):
            raise IndexError(f"Job {job_id} has no step {index}")

        step = steps[index]
        if status_rank(status) < status_rank(step.status) or (
            step.status in TERMINAL_STATUSES and status != step.status
        ):
            raise ValueError(
                f"Step {index} of job {job_id} cannot move from {step.status.value} to {status.value}"
            )

        step.status = status
        if status == StepStatus.RUNNING:
            step.started_at = datetime.now(timezone.utc)
        elif status in (StepStatus.COMPLETED, StepStatus.FAILED, StepStatus.TIMEOUT):
            step.completed_at = datetime.now(timezone.utc)
        if error_message:
            step.error = error_message

        self.supabase.table("tenant_jobs")\
            .update({"steps": [s.model_dump(mode="json", exclude_none=True) for s in steps]})\
            .eq("id", job_id)\
            .execute()

    def mark_failed(self, job_id: str, message: str, status: JobStatus = JobStatus.FAILED) -> None:
        """Terminal failure of the job record only."""
        self.supabase.table("tenant_jobs").update({
            "status": JobStatus(status).value,
            "error": message,
            "completed_at": _now(),
        }).eq("id", job_id).execute()

    def fail_job(
        self,
        job_id: str,
        tenant_id: str,
        message: str,
        status: JobStatus = JobStatus.FAILED
    ) -> None:
        """Fail the job and demote its tenant to suspended."""
        self.mark_failed(job_id, message, status)
        self.supabase.table("tenants")\
            .update({"status": TenantStatus.SUSPENDED.value})\
            .eq("id", tenant_id)\
            .execute()
        logger.warning(f"Job {job_id} {JobStatus(status).value}; tenant {tenant_id} suspended: {message}")

    def complete_job(self, job_id: str, error: Optional[str] = None) -> None:
        self.supabase.table("tenant_jobs").update({
            "status": JobStatus.COMPLETED.value,
            "completed_at": _now(),
            "error": error,
        }).eq("id", job_id).execute()
