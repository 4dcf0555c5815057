from pydantic import BaseModel
from typing import Optional


class SlugCheck(BaseModel):
    valid: bool
    reason: Optional[str] = None


class DomainRegistration(BaseModel):
    success: bool
    verified: bool = False
    skipped: bool = False
    error: Optional[str] = None


class DomainConfig(BaseModel):
    verified: bool
    cname: Optional[str] = None
    txt_record: Optional[str] = None


class SubdomainCheckRequest(BaseModel):
    slug: str


class AvailabilityResponse(BaseModel):
    available: bool
    reason: Optional[str] = None
