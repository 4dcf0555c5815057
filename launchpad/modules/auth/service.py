import hashlib
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

import httpx
from fastapi import HTTPException

from launchpad.config import settings
from launchpad.modules.auth.schemas import AuthUser, LoginRequest, TeamInfo, TokenResponse

API_PREFIX = "/api/frontend"

# In-memory cache for get_profile to reduce account API calls (e.g. a polling client with one token)
_PROFILE_CACHE: Dict[str, tuple] = {}
_PROFILE_CACHE_TTL_SEC = 60
_PROFILE_CACHE_MAX_SIZE = 500


def clear_profile_cache() -> None:
    _PROFILE_CACHE.clear()


class AuthService:
    def __init__(self, http_client: Optional[httpx.Client] = None):
        self._http_client = http_client

    @contextmanager
    def _http(self) -> Iterator[httpx.Client]:
        if self._http_client is not None:
            yield self._http_client
            return
        with httpx.Client(timeout=settings.http_timeout_seconds) as client:
            yield client

    def _url(self, path: str) -> str:
        return f"{settings.redbricks_api_url}{API_PREFIX}{path}"

    @staticmethod
    def _auth_headers(token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate against the Red Bricks API and return its Sanctum token"""
        try:
            with self._http() as client:
                res = client.post(
                    self._url("/login"),
                    json={"email": login_data.email, "password": login_data.password},
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            raise HTTPException(status_code=502, detail=f"Login failed: {str(e)}")

        if res.status_code in (401, 422):
            raise HTTPException(status_code=401, detail="Invalid email or password")
        if not res.is_success:
            raise HTTPException(status_code=502, detail=f"Login failed ({res.status_code})")

        data = res.json()
        user = data["user"]
        return TokenResponse(
            access_token=data["token"],
            user=AuthUser(id=user["id"], name=user.get("name"), email=user["email"], team_id=user.get("team_id")),
        )

    def get_profile(self, token: str) -> AuthUser:
        """Resolve a token to its user. Uses short TTL cache to reduce account API calls."""
        cache_key = hashlib.sha256(token.encode()).hexdigest()
        now = time.monotonic()
        if cache_key in _PROFILE_CACHE:
            user, expiry = _PROFILE_CACHE[cache_key]
            if now < expiry:
                return user
            del _PROFILE_CACHE[cache_key]

        try:
            with self._http() as client:
                res = client.get(self._url("/profile"), headers=self._auth_headers(token))
        except httpx.HTTPError:
            raise HTTPException(status_code=401, detail="Failed to verify your account. Please log in again.")
        if not res.is_success:
            raise HTTPException(status_code=401, detail="Session expired. Please log in again.")

        data = res.json()
        # Laravel sometimes wraps the profile as {user: {...}}
        data = data.get("user") or data
        user = AuthUser(id=data["id"], name=data.get("name"), email=data["email"], team_id=data.get("team_id"))
        if len(_PROFILE_CACHE) < _PROFILE_CACHE_MAX_SIZE:
            _PROFILE_CACHE[cache_key] = (user, now + _PROFILE_CACHE_TTL_SEC)
        return user

    def get_team_info(self, token: str) -> TeamInfo:
        """Team for the token, including its active API token as a flat string"""
        try:
            with self._http() as client:
                res = client.get(self._url("/launchpad/team-info"), headers=self._auth_headers(token))
        except httpx.HTTPError:
            raise HTTPException(status_code=401, detail="Failed to verify your account. Please log in again.")
        if not res.is_success:
            raise HTTPException(status_code=401, detail="Failed to verify your account. Please log in again.")

        data = res.json()
        return TeamInfo(
            id=data["id"],
            name=data.get("name") or "",
            tier=data.get("tier") or "free",
            api_token=data.get("api_token") or None,
        )
