from supabase import Client
from postgrest.exceptions import APIError
from launchpad.modules.tenants.schemas import (
    TenantCreate, TenantResponse, TenantDomainResponse, TenantStatus, SslStatus
)
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


class TenantService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_tenant(self, tenant_data: TenantCreate) -> TenantResponse:
        """Insert a tenant in provisioning status. Duplicate slug -> 409."""
        try:
            result = self.supabase.table("tenants").insert({
                **tenant_data.model_dump(),
                "status": TenantStatus.PROVISIONING.value,
            }).execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise HTTPException(status_code=409, detail="This subdomain is already taken")
            logger.error(f"Error creating tenant: {e.message}")
            raise HTTPException(status_code=400, detail=e.message or "Failed to create tenant")

        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create tenant")
        return TenantResponse(**result.data[0])

    def find_tenant(self, tenant_id: str) -> Optional[TenantResponse]:
        result = self.supabase.table("tenants")\
            .select("*")\
            .eq("id", tenant_id)\
            .maybe_single()\
            .execute()
        if not result or not result.data:
            return None
        return TenantResponse(**result.data)

    def get_tenant_by_id(self, tenant_id: str) -> TenantResponse:
        tenant = self.find_tenant(tenant_id)
        if tenant is None:
            raise HTTPException(status_code=404, detail="Tenant not found")
        return tenant

    def delete_tenant(self, tenant_id: str) -> None:
        self.supabase.table("tenants").delete().eq("id", tenant_id).execute()

    def update_tenant(self, tenant_id: str, fields: Dict[str, Any]) -> None:
        self.supabase.table("tenants").update(fields).eq("id", tenant_id).execute()

    def set_status(self, tenant_id: str, status: TenantStatus) -> None:
        self.update_tenant(tenant_id, {"status": TenantStatus(status).value})

    def set_project_ref(self, tenant_id: str, project_ref: str) -> None:
        self.update_tenant(tenant_id, {"supabase_project_ref": project_ref})

    def set_schema_version(self, tenant_id: str, version: str) -> None:
        self.update_tenant(tenant_id, {"schema_version": version})

    def list_tenants(
        self,
        status: Optional[TenantStatus] = None,
        with_database: bool = False,
        order_by: str = "created_at"
    ) -> List[TenantResponse]:
        query = self.supabase.table("tenants").select("*")
        if status is not None:
            query = query.eq("status", TenantStatus(status).value)
        if with_database:
            query = query.not_.is_("supabase_project_ref", "null")
        result = query.order(order_by).execute()
        return [TenantResponse(**row) for row in (result.data or [])]

    def slug_in_use(self, slug: str) -> bool:
        """True if a non-archived tenant holds the slug."""
        result = self.supabase.table("tenants")\
            .select("id, status")\
            .eq("slug", slug)\
            .neq("status", TenantStatus.ARCHIVED.value)\
            .execute()
        return bool(result.data)

    def hostname_in_use(self, hostname: str) -> bool:
        result = self.supabase.table("tenant_domains")\
            .select("id")\
            .eq("hostname", hostname)\
            .execute()
        return bool(result.data)

    def add_domain(
        self,
        tenant_id: str,
        hostname: str,
        is_primary: bool,
        ssl_status: SslStatus
    ) -> TenantDomainResponse:
        result = self.supabase.table("tenant_domains").insert({
            "tenant_id": tenant_id,
            "hostname": hostname,
            "is_primary": is_primary,
            "ssl_status": SslStatus(ssl_status).value,
        }).execute()
        if not result.data:
            raise RuntimeError(f"Failed to record domain {hostname}")
        return TenantDomainResponse(**result.data[0])

    def list_domains(self, tenant_id: str) -> List[TenantDomainResponse]:
        result = self.supabase.table("tenant_domains")\
            .select("*")\
            .eq("tenant_id", tenant_id)\
            .order("created_at")\
            .execute()
        return [TenantDomainResponse(**row) for row in (result.data or [])]

    def set_primary_domain(self, tenant_id: str, hostname: str) -> None:
        """Make hostname the tenant's only primary domain."""
        self.supabase.table("tenant_domains")\
            .update({"is_primary": False})\
            .eq("tenant_id", tenant_id)\
            .neq("hostname", hostname)\
            .execute()
        self.supabase.table("tenant_domains")\
            .update({"is_primary": True})\
            .eq("tenant_id", tenant_id)\
            .eq("hostname", hostname)\
            .execute()
