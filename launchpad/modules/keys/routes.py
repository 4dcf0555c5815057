from fastapi import APIRouter, Depends, HTTPException
from launchpad.database.supabase_client import get_supabase
from launchpad.core.dependencies import get_current_user, ensure_uuid, is_tenant_admin
from launchpad.modules.auth.schemas import AuthUser
from launchpad.modules.keys.schemas import TenantKeyResponse
from launchpad.modules.keys.service import KeyVault
from launchpad.modules.tenants.service import TenantService
from launchpad.modules.validators.schemas import ValidationResult
from supabase import Client
from typing import List

router = APIRouter(prefix="/tenants", tags=["keys"])


def get_key_vault(supabase: Client = Depends(get_supabase)) -> KeyVault:
    return KeyVault(supabase)


def get_tenant_service(supabase: Client = Depends(get_supabase)) -> TenantService:
    return TenantService(supabase)


def check_tenant_access(tenant_id: str, user: AuthUser, tenants: TenantService) -> None:
    """Missing tenant and foreign tenant look the same to the caller."""
    ensure_uuid(tenant_id, "tenant_id")
    if not is_tenant_admin(tenants.find_tenant(tenant_id), user):
        raise HTTPException(status_code=404, detail="Tenant not found")


@router.get("/{tenant_id}/keys", response_model=List[TenantKeyResponse])
def list_tenant_keys(
    tenant_id: str,
    current_user: AuthUser = Depends(get_current_user),
    tenants: TenantService = Depends(get_tenant_service),
    vault: KeyVault = Depends(get_key_vault)
):
    """List stored credential kinds and their validation state (values are never returned)"""
    check_tenant_access(tenant_id, current_user, tenants)
    return vault.list_keys(tenant_id)


@router.post("/{tenant_id}/keys/{key_type}/validate", response_model=ValidationResult)
def revalidate_tenant_key(
    tenant_id: str,
    key_type: str,
    current_user: AuthUser = Depends(get_current_user),
    tenants: TenantService = Depends(get_tenant_service),
    vault: KeyVault = Depends(get_key_vault)
):
    """Re-run the provider check for a stored key; records validated_at on success"""
    check_tenant_access(tenant_id, current_user, tenants)
    result = vault.revalidate(tenant_id, key_type)
    if result is None:
        raise HTTPException(status_code=404, detail="Key not found")
    return result
