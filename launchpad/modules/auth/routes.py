from fastapi import APIRouter, Depends
from launchpad.modules.auth.schemas import LoginRequest, TokenResponse, AuthUser
from launchpad.modules.auth.service import AuthService
from launchpad.core.dependencies import get_auth_service, get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login with Red Bricks credentials and get an access token"""
    return service.login(login_data)


@router.get("/me", response_model=AuthUser)
def get_me(current_user: AuthUser = Depends(get_current_user)):
    """Get current authenticated user"""
    return current_user
