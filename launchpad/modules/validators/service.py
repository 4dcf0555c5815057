"""
Provider key validators.

Each validator makes the cheapest authenticated request the provider offers
and maps the outcome to a ValidationResult. Validators never raise: network
failures come back as an invalid result with the error in `details`.
"""
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, Optional
import logging

import httpx

from launchpad.config import settings
from launchpad.modules.validators.schemas import ValidationResult

logger = logging.getLogger(__name__)

MIN_KEY_LENGTH = 10

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
GEOCODE_TEST_ADDRESS = "Toronto, ON, Canada"
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"
OPENAI_MODELS_URL = "https://api.openai.com/v1/models"
ANTHROPIC_MODELS_URL = "https://api.anthropic.com/v1/models"
RESEND_API_KEYS_URL = "https://api.resend.com/api-keys"
SENDGRID_SCOPES_URL = "https://api.sendgrid.com/v3/scopes"

RATE_LIMITED = "Rate limit reached. Try again in a moment."
INVALID_KEY = "Invalid API key. Check that it's correct."
INVALID_KEY_BILLING = "Invalid API key. Check that it's correct and has billing credits."
INSUFFICIENT_PERMISSIONS = "API key does not have sufficient permissions."

Validator = Callable[..., ValidationResult]


@contextmanager
def _http(http_client: Optional[httpx.Client]) -> Iterator[httpx.Client]:
    if http_client is not None:
        yield http_client
        return
    with httpx.Client(timeout=settings.http_timeout_seconds) as client:
        yield client


def _too_short(api_key: Optional[str]) -> Optional[ValidationResult]:
    if not api_key or len(api_key.strip()) < MIN_KEY_LENGTH:
        return ValidationResult(valid=False, message="API key is too short")
    return None


def _unreachable(provider: str, error: Exception) -> ValidationResult:
    logger.warning(f"{provider} validation request failed: {error}")
    return ValidationResult(
        valid=False,
        message=f"Failed to reach {provider} API. Check your network connection.",
        details=str(error),
    )


def _check_get(
    provider: str,
    url: str,
    headers: Dict[str, str],
    errors: Dict[int, str],
    http_client: Optional[httpx.Client],
) -> ValidationResult:
    """GET `url`; 2xx means the key works, known statuses map to `errors`."""
    try:
        with _http(http_client) as client:
            res = client.get(url, headers=headers)
    except httpx.HTTPError as e:
        return _unreachable(provider, e)

    if res.is_success:
        return ValidationResult(valid=True, message=f"{provider} API key is active and working")
    if res.status_code in errors:
        return ValidationResult(valid=False, message=errors[res.status_code])
    return ValidationResult(valid=False, message=f"{provider} API returned error ({res.status_code})")


def validate_google_maps_key(api_key: str, http_client: Optional[httpx.Client] = None) -> ValidationResult:
    """Geocode a fixed address; status OK means the key and Geocoding API are enabled."""
    rejected = _too_short(api_key)
    if rejected:
        return rejected

    try:
        with _http(http_client) as client:
            res = client.get(GEOCODE_URL, params={"address": GEOCODE_TEST_ADDRESS, "key": api_key.strip()})
            data = res.json()
    except (httpx.HTTPError, ValueError) as e:
        return _unreachable("Google Maps", e)

    status = data.get("status")
    if status == "OK":
        return ValidationResult(valid=True, message="Google Maps key is active and working")

    messages = {
        "REQUEST_DENIED": "Invalid API key, or Geocoding API is not enabled. Enable it at console.cloud.google.com.",
        "OVER_DAILY_LIMIT": "Quota exceeded. Check your billing account at console.cloud.google.com.",
        "OVER_QUERY_LIMIT": RATE_LIMITED,
        "INVALID_REQUEST": "Unexpected error: the test request was malformed.",
    }
    return ValidationResult(
        valid=False,
        message=messages.get(status, f"API returned status: {status}"),
        details=data.get("error_message"),
    )


def validate_gemini_key(api_key: str, http_client: Optional[httpx.Client] = None) -> ValidationResult:
    """Minimal generateContent call (5 output tokens)."""
    rejected = _too_short(api_key)
    if rejected:
        return rejected

    body = {
        "contents": [{"parts": [{"text": "Reply with exactly: OK"}]}],
        "generationConfig": {"maxOutputTokens": 5},
    }
    try:
        with _http(http_client) as client:
            res = client.post(GEMINI_URL, params={"key": api_key.strip()}, json=body)
    except httpx.HTTPError as e:
        return _unreachable("Gemini", e)

    if res.is_success:
        return ValidationResult(valid=True, message="Gemini API key is active and working")

    try:
        error = res.json().get("error") or {}
    except ValueError:
        error = {}
    error_message = error.get("message") or ""

    if res.status_code == 400 and "API_KEY_INVALID" in error_message:
        return ValidationResult(valid=False, message=INVALID_KEY)
    if res.status_code == 403:
        return ValidationResult(
            valid=False,
            message="API key is restricted or Generative Language API is not enabled. "
                    "Enable it at console.cloud.google.com.",
        )
    if res.status_code == 429 or error.get("status") == "RESOURCE_EXHAUSTED":
        return ValidationResult(valid=False, message="Quota exceeded. Check your billing at console.cloud.google.com.")
    return ValidationResult(
        valid=False,
        message=f"API returned error ({res.status_code}): {error_message or 'Unknown error'}",
    )


def validate_openai_key(api_key: str, http_client: Optional[httpx.Client] = None) -> ValidationResult:
    rejected = _too_short(api_key)
    if rejected:
        return rejected
    return _check_get(
        "OpenAI",
        OPENAI_MODELS_URL,
        {"Authorization": f"Bearer {api_key.strip()}"},
        {401: INVALID_KEY_BILLING, 429: RATE_LIMITED},
        http_client,
    )


def validate_anthropic_key(api_key: str, http_client: Optional[httpx.Client] = None) -> ValidationResult:
    rejected = _too_short(api_key)
    if rejected:
        return rejected
    return _check_get(
        "Anthropic",
        ANTHROPIC_MODELS_URL,
        {"x-api-key": api_key.strip(), "anthropic-version": "2023-06-01"},
        {401: INVALID_KEY_BILLING, 403: INSUFFICIENT_PERMISSIONS, 429: RATE_LIMITED},
        http_client,
    )


def validate_resend_key(api_key: str, http_client: Optional[httpx.Client] = None) -> ValidationResult:
    rejected = _too_short(api_key)
    if rejected:
        return rejected
    return _check_get(
        "Resend",
        RESEND_API_KEYS_URL,
        {"Authorization": f"Bearer {api_key.strip()}"},
        {401: INVALID_KEY, 403: INSUFFICIENT_PERMISSIONS, 429: RATE_LIMITED},
        http_client,
    )


def validate_sendgrid_key(api_key: str, http_client: Optional[httpx.Client] = None) -> ValidationResult:
    rejected = _too_short(api_key)
    if rejected:
        return rejected
    return _check_get(
        "SendGrid",
        SENDGRID_SCOPES_URL,
        {"Authorization": f"Bearer {api_key.strip()}"},
        {
            401: INVALID_KEY,
            403: "API key does not have sufficient permissions. Ensure Mail Send is enabled.",
            429: RATE_LIMITED,
        },
        http_client,
    )


AI_VALIDATORS: Dict[str, Validator] = {
    "gemini": validate_gemini_key,
    "openai": validate_openai_key,
    "anthropic": validate_anthropic_key,
}

EMAIL_VALIDATORS: Dict[str, Validator] = {
    "resend": validate_resend_key,
    "sendgrid": validate_sendgrid_key,
}

# Stored credential kind -> validator; platform-internal kinds have none
KEY_TYPE_VALIDATORS: Dict[str, Validator] = {
    "google_maps": validate_google_maps_key,
    **AI_VALIDATORS,
    **EMAIL_VALIDATORS,
}


def get_validator(key_type: str) -> Optional[Validator]:
    return KEY_TYPE_VALIDATORS.get(key_type)
