"""
Tests for provider key validators

Provider APIs are served by httpx.MockTransport.
"""

import httpx
import pytest

from launchpad.modules.validators.service import (
    INVALID_KEY,
    INVALID_KEY_BILLING,
    get_validator,
    validate_anthropic_key,
    validate_gemini_key,
    validate_google_maps_key,
    validate_openai_key,
    validate_resend_key,
    validate_sendgrid_key,
)

GOOD_KEY = "sk-test-0123456789abcdef"


def mock_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def respond(status_code, **kwargs):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(status_code, **kwargs)

    return handler, seen


class TestShortKeys:
    """Keys shorter than ten characters never reach the provider"""

    @pytest.mark.parametrize("validator", [
        validate_google_maps_key,
        validate_gemini_key,
        validate_openai_key,
        validate_anthropic_key,
        validate_resend_key,
        validate_sendgrid_key,
    ])
    def test_rejected_without_request(self, validator):
        handler, seen = respond(200, json={})

        result = validator("short", http_client=mock_client(handler))

        assert result.valid is False
        assert result.message == "API key is too short"
        assert seen == []


class TestOpenAI:
    def test_valid_key(self):
        handler, seen = respond(200, json={"data": []})

        result = validate_openai_key(GOOD_KEY, http_client=mock_client(handler))

        assert result.valid is True
        assert seen[0].url == httpx.URL("https://api.openai.com/v1/models")
        assert seen[0].headers["Authorization"] == f"Bearer {GOOD_KEY}"

    def test_unauthorized(self):
        handler, _ = respond(401, json={"error": {"message": "bad key"}})

        result = validate_openai_key(GOOD_KEY, http_client=mock_client(handler))

        assert result.valid is False
        assert result.message == INVALID_KEY_BILLING

    def test_unexpected_status(self):
        handler, _ = respond(503)

        result = validate_openai_key(GOOD_KEY, http_client=mock_client(handler))

        assert result.message == "OpenAI API returned error (503)"

    def test_network_failure_is_reported_not_raised(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = validate_openai_key(GOOD_KEY, http_client=mock_client(handler))

        assert result.valid is False
        assert result.message.startswith("Failed to reach OpenAI API")
        assert "connection refused" in result.details


class TestAnthropicAndEmail:
    def test_anthropic_sends_version_header(self):
        handler, seen = respond(200, json={"data": []})

        assert validate_anthropic_key(GOOD_KEY, http_client=mock_client(handler)).valid is True
        assert seen[0].headers["x-api-key"] == GOOD_KEY
        assert seen[0].headers["anthropic-version"] == "2023-06-01"

    def test_resend_unauthorized(self):
        handler, _ = respond(401)

        assert validate_resend_key(GOOD_KEY, http_client=mock_client(handler)).message == INVALID_KEY

    def test_sendgrid_missing_scope(self):
        handler, _ = respond(403)

        result = validate_sendgrid_key(GOOD_KEY, http_client=mock_client(handler))

        assert result.valid is False
        assert "Mail Send" in result.message


class TestGoogleMaps:
    def test_status_ok(self):
        handler, seen = respond(200, json={"status": "OK", "results": []})

        result = validate_google_maps_key(GOOD_KEY, http_client=mock_client(handler))

        assert result.valid is True
        assert seen[0].url.params["key"] == GOOD_KEY

    def test_request_denied(self):
        handler, _ = respond(200, json={"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."})

        result = validate_google_maps_key(GOOD_KEY, http_client=mock_client(handler))

        assert result.valid is False
        assert "Geocoding API" in result.message
        assert result.details == "The provided API key is invalid."

    def test_unknown_status(self):
        handler, _ = respond(200, json={"status": "UNKNOWN_ERROR"})

        result = validate_google_maps_key(GOOD_KEY, http_client=mock_client(handler))

        assert result.message == "API returned status: UNKNOWN_ERROR"


class TestGemini:
    def test_valid_key(self):
        handler, seen = respond(200, json={"candidates": []})

        assert validate_gemini_key(GOOD_KEY, http_client=mock_client(handler)).valid is True
        assert seen[0].method == "POST"

    def test_invalid_key(self):
        handler, _ = respond(400, json={"error": {"message": "API key not valid. [API_KEY_INVALID]"}})

        result = validate_gemini_key(GOOD_KEY, http_client=mock_client(handler))

        assert result.message == INVALID_KEY

    def test_quota_exhausted(self):
        handler, _ = respond(429, json={"error": {"status": "RESOURCE_EXHAUSTED", "message": "quota"}})

        result = validate_gemini_key(GOOD_KEY, http_client=mock_client(handler))

        assert result.message.startswith("Quota exceeded")


class TestGetValidator:
    def test_known_kinds(self):
        assert get_validator("google_maps") is validate_google_maps_key
        assert get_validator("openai") is validate_openai_key
        assert get_validator("sendgrid") is validate_sendgrid_key

    def test_platform_kinds_have_no_validator(self):
        assert get_validator("supabase_url") is None
        assert get_validator("redbricks_token") is None
