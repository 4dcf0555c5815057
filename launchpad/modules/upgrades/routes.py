from fastapi import APIRouter, Depends, HTTPException, Response, status
from launchpad.database.supabase_client import get_supabase
from launchpad.core.dependencies import require_admin_key, ensure_uuid
from launchpad.modules.upgrades.schemas import (
    UpgradeOutcome, TenantUpgradeResult, BatchUpgradeResult, UpgradeStatusResponse,
    TenantUpgradeDetail, FeatureFlagsRequest, FlagPropagationSummary,
)
from launchpad.modules.upgrades.service import TenantUpgradeService
from supabase import Client

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)])


def get_upgrade_service(supabase: Client = Depends(get_supabase)) -> TenantUpgradeService:
    return TenantUpgradeService(supabase)


@router.get("/upgrade", response_model=UpgradeStatusResponse)
def get_upgrade_status(service: TenantUpgradeService = Depends(get_upgrade_service)):
    """Schema version of every active tenant against the latest migration"""
    return service.upgrade_status()


@router.post("/upgrade", response_model=BatchUpgradeResult)
def upgrade_all(service: TenantUpgradeService = Depends(get_upgrade_service)):
    """
    Run pending migrations on every active tenant, one at a time.
    Long-running; call it from a script with a generous timeout.
    """
    return service.upgrade_all_tenants()


@router.get("/upgrade/{tenant_id}", response_model=TenantUpgradeDetail)
def get_tenant_upgrade_status(
    tenant_id: str,
    service: TenantUpgradeService = Depends(get_upgrade_service)
):
    ensure_uuid(tenant_id, "tenant_id")
    return service.tenant_upgrade_detail(tenant_id)


@router.post("/upgrade/{tenant_id}", response_model=TenantUpgradeResult)
def upgrade_one(
    tenant_id: str,
    response: Response,
    service: TenantUpgradeService = Depends(get_upgrade_service)
):
    """Upgrade one tenant; also the way to retry after a failed upgrade"""
    ensure_uuid(tenant_id, "tenant_id")
    if service.tenants.find_tenant(tenant_id) is None:
        raise HTTPException(status_code=404, detail="Tenant not found")

    result = service.upgrade_tenant(tenant_id)
    if result.status == UpgradeOutcome.FAILED:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return result


@router.post("/features", response_model=FlagPropagationSummary)
def propagate_features(
    body: FeatureFlagsRequest,
    service: TenantUpgradeService = Depends(get_upgrade_service)
):
    """Add new feature flags to every active tenant without overriding existing values"""
    return service.propagate_feature_flags_to_all(body.flags)
