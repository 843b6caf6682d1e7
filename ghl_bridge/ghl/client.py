"""GHL API client - authenticated request dispatcher for the resource API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..errors import UpstreamAPIError
from .tokens import UpstreamTokenStore

logger = logging.getLogger(__name__)

GHL_API_BASE = "https://services.leadconnectorhq.com"
GHL_API_VERSION = "2021-07-28"


class GHLClient:
    """GoHighLevel API client bound to an upstream token store.

    Every call asks the store for a live access token, so a token close to
    expiry is refreshed before the request goes out. Failures are not retried.

    Usage:
        ghl = GHLClient(token_store)
        contact = await ghl.get("/contacts/abc123")
        await ghl.post("/contacts/", {"locationId": "...", "email": "..."})
    """

    def __init__(
        self,
        token_store: UpstreamTokenStore,
        base_url: str = GHL_API_BASE,
        api_version: str = GHL_API_VERSION,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.token_store = token_store
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def call(
        self,
        method: str,
        path: str,
        body: Any = None,
        params: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make an authenticated API request.

        With ``files`` the request is multipart and ``body`` supplies the form fields.

        Raises:
            NotAuthenticatedError: If no GHL tokens are stored
            UpstreamAuthError: If a needed refresh is rejected
            UpstreamAPIError: On a non-2xx response or transport failure
        """
        access_token = await self.token_store.get_valid_access_token()
        url = f"{self.base_url}{path}"
        query = {k: v for k, v in (params or {}).items() if v is not None}

        logger.debug("GHL API %s %s", method, path)

        try:
            response = await self._client.request(
                method,
                url,
                params=query or None,
                json=None if files else body,
                data=body if files else None,
                files=files,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json",
                    "Version": self.api_version,
                },
            )
        except httpx.HTTPError as e:
            logger.error("GHL API %s %s failed: %s", method, path, e)
            raise UpstreamAPIError(f"GHL API request failed: {e}") from e

        if not response.is_success:
            try:
                error_body: Any = response.json() if response.content else None
            except ValueError:
                error_body = response.text
            logger.error("GHL API error: %s %s -> %s", method, path, response.status_code)
            raise UpstreamAPIError(
                f"GHL API request failed: {response.status_code}",
                status_code=response.status_code,
                body=error_body,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    async def get(self, path: str, **params: Any) -> dict[str, Any]:
        return await self.call("GET", path, params=params)

    async def post(self, path: str, body: Any = None, **params: Any) -> dict[str, Any]:
        return await self.call("POST", path, body=body, params=params)

    async def put(self, path: str, body: Any = None) -> dict[str, Any]:
        return await self.call("PUT", path, body=body)

    async def delete(self, path: str, body: Any = None) -> dict[str, Any]:
        return await self.call("DELETE", path, body=body)

    async def upload(
        self,
        path: str,
        files: dict[str, Any],
        fields: dict[str, Any] | None = None,
        **params: Any,
    ) -> dict[str, Any]:
        return await self.call("POST", path, body=fields or {}, params=params, files=files)
