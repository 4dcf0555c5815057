"""
Core dependencies for route protection and ownership checks
"""

import hmac
import re
from fastapi import Depends, Header, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from launchpad.config import settings
from launchpad.modules.auth.schemas import AuthUser
from launchpad.modules.auth.service import AuthService
from launchpad.modules.tenants.schemas import TenantResponse
from typing import Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

TOKEN_COOKIE = "rb_launchpad_token"
UUID_PATTERN = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE)


def get_auth_service() -> AuthService:
    return AuthService()


def get_current_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> str:
    """Bearer token from the Authorization header, else the launchpad session cookie"""
    if credentials and credentials.credentials:
        return credentials.credentials
    token = request.cookies.get(TOKEN_COOKIE)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return token


def get_current_user(
    token: str = Depends(get_current_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> AuthUser:
    return auth_service.get_profile(token)


def validate_admin_api_key(key: Optional[str]) -> bool:
    """Constant-time comparison against ADMIN_API_KEY; always False when unset."""
    expected = settings.admin_api_key
    if not expected or not key:
        return False
    return hmac.compare_digest(key.encode(), expected.encode())


def require_admin_key(x_admin_key: Optional[str] = Header(default=None)) -> None:
    if not validate_admin_api_key(x_admin_key):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def ensure_uuid(value: str, label: str) -> str:
    if not UUID_PATTERN.match(value or ""):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {label} format")
    return value


def is_tenant_admin(tenant: Optional[TenantResponse], user: AuthUser) -> bool:
    """Only the tenant's registered admin may see its jobs and keys."""
    return tenant is not None and tenant.admin_email.lower() == user.email.lower()
