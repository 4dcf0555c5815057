from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


class JobType(str, Enum):
    LAUNCH = "launch"
    UPDATE_KEYS = "update_keys"
    ADD_DOMAIN = "add_domain"
    UPGRADE = "upgrade"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"


# Steps share the job's status vocabulary
StepStatus = JobStatus

TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.TIMEOUT})

_STATUS_RANK = {
    JobStatus.PENDING: 0,
    JobStatus.RUNNING: 1,
    JobStatus.COMPLETED: 2,
    JobStatus.FAILED: 2,
    JobStatus.TIMEOUT: 2,
}


def status_rank(status: JobStatus) -> int:
    return _STATUS_RANK[JobStatus(status)]


class TenantJobStep(BaseModel):
    name: str
    status: StepStatus = StepStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


class TenantJobResponse(BaseModel):
    id: str
    tenant_id: str
    job_type: JobType
    status: JobStatus
    steps: List[TenantJobStep] = Field(default_factory=list)
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CancelJobResponse(BaseModel):
    job_id: str
    cancelled: bool
    message: str
