"""HTTP client for the backend user sync endpoint."""

from typing import Optional

import httpx

from ...config.provider import BackendConfig
from ..api.models import SyncUserResponse


class SyncError(Exception):
    """The backend rejected or failed the sync request."""


class BackendUnavailableError(SyncError):
    """No backend could be reached."""


class BackendNotConfiguredError(SyncError):
    """No backend API URL is configured."""


class BackendClient:
    """Calls POST {api_url}{sync_path} with the caller's bearer credential."""

    def __init__(self, config: BackendConfig, http_client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            config: Backend configuration
            http_client: Optional shared httpx client (one is created per call otherwise)
        """
        self.config = config
        self._client = http_client

    @property
    def sync_url(self) -> Optional[str]:
        if not self.config.is_configured:
            return None
        return f"{self.config.api_url.rstrip('/')}{self.config.sync_path}"

    async def sync_user(self, bearer_token: Optional[str]) -> SyncUserResponse:
        """
        Ask the backend to reconcile the caller's user record.

        Raises:
            BackendNotConfiguredError: If no API URL is configured
            BackendUnavailableError: On connection failures and timeouts
            SyncError: On any non-2xx response or malformed body
        """
        url = self.sync_url
        if not url:
            raise BackendNotConfiguredError("API not configured")

        headers = {}
        if bearer_token:
            headers["Authorization"] = f"Bearer {bearer_token}"

        try:
            if self._client:
                response = await self._client.post(url, headers=headers, timeout=self.config.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.config.timeout) as client:
                    response = await client.post(url, headers=headers)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise BackendUnavailableError(f"Network Error: {e}") from e

        if response.status_code >= 400:
            raise SyncError(f"Sync failed with status {response.status_code}: {response.text[:200]}")

        try:
            return SyncUserResponse.model_validate(response.json())
        except ValueError as e:
            raise SyncError(f"Malformed sync response: {e}") from e
