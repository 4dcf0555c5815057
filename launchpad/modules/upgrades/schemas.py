from enum import Enum
from pydantic import BaseModel, Field, StrictBool, field_validator
from typing import Optional, Dict, List
from datetime import datetime
from launchpad.modules.tenants.schemas import TenantStatus


class UpgradeOutcome(str, Enum):
    UPGRADED = "upgraded"
    SKIPPED = "skipped"
    FAILED = "failed"


class TenantUpgradeResult(BaseModel):
    tenant_id: str
    slug: str
    previous_version: Optional[str] = None
    new_version: Optional[str] = None
    migrations_run: int = 0
    status: UpgradeOutcome
    error: Optional[str] = None
    job_id: Optional[str] = None


class BatchUpgradeResult(BaseModel):
    latest_version: Optional[str] = None
    upgraded: int = 0
    skipped: int = 0
    failed: int = 0
    details: List[TenantUpgradeResult] = Field(default_factory=list)


class TenantSchemaState(BaseModel):
    id: str
    slug: str
    schema_version: Optional[str] = None
    pending_migrations: int
    status: TenantStatus


class UpgradeStatusResponse(BaseModel):
    latest_version: Optional[str] = None
    total_migrations: int
    tenants: List[TenantSchemaState]


class TenantUpgradeInfo(BaseModel):
    id: str
    slug: str
    display_name: str
    status: TenantStatus
    schema_version: Optional[str] = None
    has_database: bool
    created_at: Optional[datetime] = None


class TenantUpgradeDetail(BaseModel):
    tenant: TenantUpgradeInfo
    latest_version: Optional[str] = None
    pending_migrations: int
    pending_migration_files: List[str]
    is_up_to_date: bool


class FeatureFlagsRequest(BaseModel):
    flags: Dict[str, StrictBool]

    @field_validator("flags")
    @classmethod
    def not_empty(cls, value: Dict[str, bool]) -> Dict[str, bool]:
        if not value:
            raise ValueError("flags must be a non-empty object of { flagName: boolean }")
        return value


class FlagPropagationResult(BaseModel):
    added: List[str] = Field(default_factory=list)
    skipped: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class FlagPropagationError(BaseModel):
    tenant_id: str
    slug: str
    error: str


class FlagPropagationSummary(BaseModel):
    message: str
    total_tenants: int
    tenants_updated: int
    total_flags_added: int
    errors: List[FlagPropagationError] = Field(default_factory=list)
