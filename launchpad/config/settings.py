from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Platform Supabase (tenant metadata: tenants, domains, keys, jobs)
    platform_supabase_url: str = ""
    platform_supabase_service_key: str = ""

    # Supabase Management API (per-tenant database provisioning)
    supabase_management_url: str = "https://api.supabase.com/v1"
    supabase_management_token: Optional[str] = None
    supabase_org_id: Optional[str] = None
    supabase_default_region: str = "us-east-1"
    supabase_project_plan: str = "free"
    project_ready_timeout_seconds: float = 120.0
    project_poll_interval_seconds: float = 3.0
    template_migrations_dir: str = "supabase/template-migrations"

    # Vercel (tenant hostnames + SSL)
    vercel_api_url: str = "https://api.vercel.com"
    vercel_token: Optional[str] = None
    vercel_project_id: Optional[str] = None
    vercel_team_id: Optional[str] = None
    template_domain: str = "red-bricks.app"

    # Secrets
    key_encryption_secret: Optional[str] = None  # 64 hex chars (32 bytes)
    admin_api_key: Optional[str] = None

    # Red Bricks account API (authentication + team info)
    redbricks_api_url: str = "https://api.redbricksdata.com"

    # Pipeline
    step_timeout_seconds: float = 300.0
    http_timeout_seconds: float = 30.0

    # App
    app_name: str = "launchpad"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_vercel_configured(self) -> bool:
        return bool(self.vercel_token and self.vercel_project_id)

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def site_url(self, slug: str) -> str:
        return f"https://{slug}.{self.template_domain}"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
