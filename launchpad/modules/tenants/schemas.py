from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, Dict
from datetime import datetime


class TenantStatus(str, Enum):
    PROVISIONING = "provisioning"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


class SslStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"


class TenantCreate(BaseModel):
    team_id: int
    slug: str
    display_name: str
    template: str = "preconstruction-v1"
    theme_preset: str = "luxury-blue"
    feature_flags: Dict[str, bool] = Field(default_factory=dict)
    admin_email: str


class TenantResponse(BaseModel):
    id: str
    team_id: int
    slug: str
    display_name: str
    template: str
    status: TenantStatus
    theme_preset: Optional[str] = None
    feature_flags: Dict[str, bool] = Field(default_factory=dict)
    admin_email: str
    supabase_project_ref: Optional[str] = None
    schema_version: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TenantDomainResponse(BaseModel):
    id: str
    tenant_id: str
    hostname: str
    is_primary: bool = False
    ssl_status: SslStatus = SslStatus.PENDING
    verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
