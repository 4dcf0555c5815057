from supabase import create_client, Client
from launchpad.config import settings


class SupabaseClient:
    _client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        """Platform client with the service_role key; bypasses RLS on tenant metadata."""
        if cls._client is None:
            if not settings.platform_supabase_url or not settings.platform_supabase_service_key:
                raise RuntimeError(
                    "Platform Supabase not configured. Set PLATFORM_SUPABASE_URL and PLATFORM_SUPABASE_SERVICE_KEY."
                )
            cls._client = create_client(
                settings.platform_supabase_url, settings.platform_supabase_service_key
            )
        return cls._client

    @classmethod
    def reset_client(cls):
        cls._client = None


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def create_tenant_client(api_url: str, service_role_key: str) -> Client:
    """Client bound to a tenant's own database (site_config, admins)."""
    return create_client(api_url, service_role_key)
