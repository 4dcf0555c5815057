import re
from supabase import Client
from launchpad.config import settings
from launchpad.modules.domains.registrar import VercelDomainRegistrar
from launchpad.modules.domains.schemas import SlugCheck, AvailabilityResponse
from launchpad.modules.tenants.service import TenantService
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# 2-63 chars, lowercase alphanumeric + hyphens, no leading/trailing hyphen
SLUG_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
SLUG_MIN_LENGTH = 2
SLUG_MAX_LENGTH = 63

RESERVED_SLUGS = frozenset({
    "www", "api", "app", "admin", "mail", "ftp", "ns1", "ns2",
    "blog", "help", "support", "status", "docs", "cdn", "static",
    "assets", "media", "test", "staging", "dev", "demo",
    "launchpad", "platform", "dashboard",
})

TAKEN = "Subdomain is already taken"


def validate_slug_format(slug: str) -> SlugCheck:
    """Pure format guard; runs before any lookup or external call."""
    if len(slug) < SLUG_MIN_LENGTH:
        return SlugCheck(valid=False, reason=f"Must be at least {SLUG_MIN_LENGTH} characters")
    if len(slug) > SLUG_MAX_LENGTH:
        return SlugCheck(valid=False, reason=f"Must be {SLUG_MAX_LENGTH} characters or fewer")
    if not SLUG_PATTERN.match(slug):
        return SlugCheck(
            valid=False,
            reason="Only lowercase letters, numbers, and hyphens allowed. Cannot start or end with a hyphen.",
        )
    if slug in RESERVED_SLUGS:
        return SlugCheck(valid=False, reason="This subdomain is reserved")
    return SlugCheck(valid=True)


def tenant_hostname(slug: str) -> str:
    return f"{slug}.{settings.template_domain}"


class DomainService:
    def __init__(self, supabase: Client, registrar: Optional[VercelDomainRegistrar] = None):
        self.tenants = TenantService(supabase)
        self.registrar = registrar or VercelDomainRegistrar()

    def check_subdomain_availability(self, slug: str) -> AvailabilityResponse:
        """
        Format guard, then platform DB (tenants, then tenant_domains), then Vercel.
        Stops at the first negative answer.
        """
        format_check = validate_slug_format(slug)
        if not format_check.valid:
            return AvailabilityResponse(available=False, reason=format_check.reason)

        if self.tenants.slug_in_use(slug):
            return AvailabilityResponse(available=False, reason=TAKEN)

        hostname = tenant_hostname(slug)
        if self.tenants.hostname_in_use(hostname):
            return AvailabilityResponse(available=False, reason=TAKEN)

        # Attached in Vercel but unknown to the platform DB: an orphan, still unavailable
        if self.registrar.is_configured and self.registrar.domain_exists(hostname):
            return AvailabilityResponse(available=False, reason=TAKEN)

        return AvailabilityResponse(available=True)
