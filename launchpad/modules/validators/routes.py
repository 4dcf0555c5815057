from fastapi import APIRouter, Depends, HTTPException, Request
from launchpad.core.dependencies import get_current_user
from launchpad.core.rate_limit import limiter, PROVIDER_CHECK_LIMIT
from launchpad.modules.auth.schemas import AuthUser
from launchpad.modules.provisioning.schemas import AIProvider, EmailProvider
from launchpad.modules.validators.schemas import ValidateKeyRequest, ValidationResult
from launchpad.modules.validators.service import (
    AI_VALIDATORS, EMAIL_VALIDATORS, validate_google_maps_key
)

router = APIRouter(prefix="/validate", tags=["validate"])


@router.post("/maps", response_model=ValidationResult)
@limiter.limit(PROVIDER_CHECK_LIMIT)
def validate_maps_key(
    request: Request,
    body: ValidateKeyRequest,
    current_user: AuthUser = Depends(get_current_user)
):
    """Check a Google Maps key with a test geocode"""
    return validate_google_maps_key(body.api_key)


@router.post("/ai", response_model=ValidationResult)
@limiter.limit(PROVIDER_CHECK_LIMIT)
def validate_ai_key(
    request: Request,
    body: ValidateKeyRequest,
    current_user: AuthUser = Depends(get_current_user)
):
    """Check an AI provider key (gemini, openai, anthropic; default gemini)"""
    provider = body.provider or AIProvider.GEMINI.value
    validator = AI_VALIDATORS.get(provider)
    if validator is None:
        raise HTTPException(status_code=400, detail=f"Unsupported AI provider: {provider}")
    return validator(body.api_key)


@router.post("/email", response_model=ValidationResult)
@limiter.limit(PROVIDER_CHECK_LIMIT)
def validate_email_key(
    request: Request,
    body: ValidateKeyRequest,
    current_user: AuthUser = Depends(get_current_user)
):
    """Check an email provider key (resend, sendgrid; default resend)"""
    provider = body.provider or EmailProvider.RESEND.value
    validator = EMAIL_VALIDATORS.get(provider)
    if validator is None:
        raise HTTPException(status_code=400, detail=f"Unsupported email provider: {provider}")
    return validator(body.api_key)
