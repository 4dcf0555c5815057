from fastapi import APIRouter, Depends, Request
from launchpad.database.supabase_client import get_supabase
from launchpad.core.dependencies import get_current_user
from launchpad.core.rate_limit import limiter, PROVIDER_CHECK_LIMIT
from launchpad.modules.auth.schemas import AuthUser
from launchpad.modules.domains.schemas import SubdomainCheckRequest, AvailabilityResponse
from launchpad.modules.domains.service import DomainService
from supabase import Client

router = APIRouter(prefix="/domains", tags=["domains"])


def get_domain_service(supabase: Client = Depends(get_supabase)) -> DomainService:
    return DomainService(supabase)


@router.post("/check", response_model=AvailabilityResponse)
@limiter.limit(PROVIDER_CHECK_LIMIT)
def check_subdomain(
    request: Request,
    body: SubdomainCheckRequest,
    current_user: AuthUser = Depends(get_current_user),
    service: DomainService = Depends(get_domain_service)
):
    """Check whether a subdomain can be claimed for a new site"""
    return service.check_subdomain_availability(body.slug.strip().lower())
