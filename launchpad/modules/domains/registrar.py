"""
Vercel Domains API client for tenant hostnames.

Vercel versions each endpoint separately, so the v6/v9/v10 prefixes below are
per-endpoint and intentional.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from urllib.parse import quote
import logging

import httpx

from launchpad.config import settings, Settings
from launchpad.core.exceptions import DeadlineExceeded
from launchpad.modules.domains.schemas import DomainRegistration, DomainConfig
from launchpad.modules.jobs.cancellation import StepDeadline

logger = logging.getLogger(__name__)


class VercelDomainRegistrar:
    def __init__(self, http_client: Optional[httpx.Client] = None, config: Optional[Settings] = None):
        self.config = config or settings
        self._http_client = http_client

    @property
    def is_configured(self) -> bool:
        return self.config.is_vercel_configured

    @contextmanager
    def _http(self) -> Iterator[httpx.Client]:
        if self._http_client is not None:
            yield self._http_client
            return
        with httpx.Client() as client:
            yield client

    def _headers(self) -> Dict[str, str]:
        if not self.config.vercel_token:
            raise RuntimeError("VERCEL_TOKEN is required")
        return {"Authorization": f"Bearer {self.config.vercel_token}", "Content-Type": "application/json"}

    def _params(self) -> Dict[str, str]:
        return {"teamId": self.config.vercel_team_id} if self.config.vercel_team_id else {}

    def _project_id(self) -> str:
        if not self.config.vercel_project_id:
            raise RuntimeError("VERCEL_PROJECT_ID is required")
        return self.config.vercel_project_id

    def _request(
        self,
        method: str,
        path: str,
        deadline: Optional[StepDeadline] = None,
        **kwargs: Any
    ) -> httpx.Response:
        cap = self.config.http_timeout_seconds
        timeout = deadline.timeout(cap) if deadline else cap
        try:
            with self._http() as client:
                return client.request(
                    method,
                    f"{self.config.vercel_api_url}{path}",
                    headers=self._headers(),
                    params=self._params(),
                    timeout=timeout,
                    **kwargs,
                )
        except httpx.TimeoutException:
            if deadline is not None and deadline.expired:
                raise DeadlineExceeded(f"Step exceeded its {deadline.seconds:g}s deadline")
            raise

    def add_domain(self, hostname: str, deadline: Optional[StepDeadline] = None) -> DomainRegistration:
        """
        Attach a hostname to the multi-tenant template project.

        When Vercel is not configured (local dev, domain not yet purchased) the
        call is skipped and reported as a successful, unverified registration.
        """
        if not self.is_configured:
            logger.warning(f"Skipping domain setup for {hostname!r}: VERCEL_TOKEN or VERCEL_PROJECT_ID not set")
            return DomainRegistration(success=True, verified=False, skipped=True)

        try:
            res = self._request(
                "POST", f"/v10/projects/{self._project_id()}/domains", deadline, json={"name": hostname}
            )
        except httpx.HTTPError as e:
            logger.error(f"Error adding domain {hostname}: {str(e)}")
            return DomainRegistration(success=False, error=f"Failed to reach domain service: {str(e)}")

        if res.is_success:
            return DomainRegistration(success=True, verified=bool(res.json().get("verified")))

        try:
            error = res.json().get("error") or {}
        except ValueError:
            error = {}

        # Already attached to this project
        if error.get("code") == "domain_already_in_use":
            return DomainRegistration(success=True, verified=True)

        return DomainRegistration(
            success=False,
            error=error.get("message") or f"Failed to add domain ({res.status_code})",
        )

    def remove_domain(self, hostname: str) -> bool:
        res = self._request("DELETE", f"/v9/projects/{self._project_id()}/domains/{quote(hostname, safe='')}")
        return res.is_success

    def domain_exists(self, hostname: str) -> bool:
        res = self._request("GET", f"/v9/projects/{self._project_id()}/domains/{quote(hostname, safe='')}")
        return res.is_success

    def get_domain_config(self, hostname: str) -> DomainConfig:
        """DNS verification state for a custom domain."""
        res = self._request("GET", f"/v6/domains/{quote(hostname, safe='')}/config")
        if not res.is_success:
            return DomainConfig(verified=False)
        data = res.json()
        cnames = data.get("cnames") or []
        return DomainConfig(
            verified=not data.get("misconfigured", False),
            cname=cnames[0] if cnames else None,
            txt_record=data.get("txtRecord"),
        )
