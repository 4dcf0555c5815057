from enum import Enum
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, List
from launchpad.modules.jobs.schemas import JobStatus, TenantJobStep
from launchpad.modules.tenants.schemas import TenantStatus
from launchpad.modules.domains.service import validate_slug_format

DISPLAY_NAME_MAX_LENGTH = 100


class AIProvider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class EmailProvider(str, Enum):
    RESEND = "resend"
    SENDGRID = "sendgrid"


class LaunchRequest(BaseModel):
    # Identity
    slug: str
    display_name: str
    custom_domain: Optional[str] = None
    # Keys
    google_maps_key: Optional[str] = None
    ai_provider: AIProvider = AIProvider.GEMINI
    ai_key: Optional[str] = None
    email_provider: EmailProvider = EmailProvider.RESEND
    email_key: Optional[str] = None
    gemini_key: Optional[str] = None  # deprecated: use ai_key + ai_provider
    resend_key: Optional[str] = None  # deprecated: use email_key + email_provider
    # Blueprint
    template: str = "preconstruction-v1"
    theme_preset: str = "luxury-blue"
    features: Dict[str, bool] = Field(default_factory=dict)

    @field_validator("slug")
    @classmethod
    def slug_format(cls, value: str) -> str:
        check = validate_slug_format(value)
        if not check.valid:
            raise ValueError(check.reason or "Invalid slug format")
        return value

    @field_validator("display_name")
    @classmethod
    def display_name_length(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("display_name is required")
        if len(value) > DISPLAY_NAME_MAX_LENGTH:
            raise ValueError(f"Display name must be {DISPLAY_NAME_MAX_LENGTH} characters or fewer")
        return value

    @field_validator("custom_domain")
    @classmethod
    def normalize_custom_domain(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().lower()
        return value or None

    @property
    def effective_ai_key(self) -> Optional[str]:
        return self.ai_key or self.gemini_key

    @property
    def effective_email_key(self) -> Optional[str]:
        return self.email_key or self.resend_key


class LaunchResponse(BaseModel):
    tenant_id: str
    job_id: str


class TenantSummary(BaseModel):
    slug: str
    status: TenantStatus
    display_name: str
    url: str


class JobStatusResponse(BaseModel):
    job_id: str
    status: JobStatus
    steps: List[TenantJobStep]
    error: Optional[str] = None
    tenant: TenantSummary


class ProvisionedDatabase(BaseModel):
    ref: str
    api_url: str
    anon_key: str
    service_role_key: str
    db_url: str


class SeedData(BaseModel):
    site_name: str
    theme_preset: str
    admin_email: str
    features: Dict[str, bool] = Field(default_factory=dict)
