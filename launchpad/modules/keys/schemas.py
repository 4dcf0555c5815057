from enum import Enum
from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class KeyType(str, Enum):
    """Known credential kinds. The column is open text; other kinds are accepted."""
    # Platform-internal: issued when the tenant database is created
    SUPABASE_URL = "supabase_url"
    SUPABASE_ANON_KEY = "supabase_anon_key"
    SUPABASE_SERVICE_ROLE = "supabase_service_role"
    REDBRICKS_TOKEN = "redbricks_token"
    # User-supplied provider keys
    GOOGLE_MAPS = "google_maps"
    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    RESEND = "resend"
    SENDGRID = "sendgrid"


class KeyEntry(BaseModel):
    key_type: str
    value: str
    # True only when the credential is already known to work
    validated: bool = False


class TenantKeyResponse(BaseModel):
    """Key metadata; the encrypted value is never returned."""
    tenant_id: str
    key_type: str
    validated_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
