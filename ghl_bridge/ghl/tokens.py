"""Upstream (GHL) OAuth token store.

Holds the single GHL token pair the bridge uses against the resource API and
keeps it fresh:

1. Exchange the authorization code from the GHL callback for tokens
2. Hand out a valid access token, refreshing 5 minutes before expiry
3. Coalesce concurrent refreshes into one upstream call

GHL refresh tokens are single-use, so two racing refreshes would invalidate
each other. Every caller that arrives while a refresh is pending awaits the
same task instead.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator
from urllib.parse import urlencode

import httpx

from ..clock import now_ms
from ..errors import NotAuthenticatedError, UpstreamAuthError

logger = logging.getLogger(__name__)

# GHL OAuth endpoints
GHL_AUTH_URL = "https://marketplace.gohighlevel.com/oauth/chooselocation"
GHL_TOKEN_URL = "https://services.leadconnectorhq.com/oauth/token"

REFRESH_MARGIN_MS = 5 * 60 * 1000

# Consumed refresh tokens remembered for successor lookups
MAX_LINEAGE = 256


@dataclass(frozen=True)
class UpstreamTokenPair:
    """GHL access/refresh token pair. Replaced wholesale, never edited."""

    access_token: str
    refresh_token: str
    expires_at: int  # Unix timestamp, milliseconds
    scope: str = ""
    location_id: str | None = None
    company_id: str | None = None
    user_type: str | None = None  # "Company" or "Location"

    def needs_refresh(self, now: int | None = None, margin_ms: int = REFRESH_MARGIN_MS) -> bool:
        current = now_ms() if now is None else now
        return current >= self.expires_at - margin_ms

    @property
    def expires_in_seconds(self) -> int:
        return max(0, (self.expires_at - now_ms()) // 1000)

    @classmethod
    def from_token_response(cls, data: dict[str, Any], issued_at: int | None = None) -> "UpstreamTokenPair":
        """Build a pair from a GHL token endpoint response.

        Raises:
            UpstreamAuthError: If required fields are missing
        """
        issued = now_ms() if issued_at is None else issued_at
        try:
            return cls(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
                expires_at=issued + int(data.get("expires_in", 86400)) * 1000,
                scope=data.get("scope", "") or "",
                location_id=data.get("locationId"),
                company_id=data.get("companyId"),
                user_type=data.get("userType"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise UpstreamAuthError(
                f"Invalid token response: missing or malformed {e}",
                details={"response_keys": sorted(data) if isinstance(data, dict) else []},
            ) from e


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json() if response.content else {}
    except ValueError:
        return response.text[:500]


class UpstreamTokenStore:
    """Owner of the bridge's GHL credentials.

    Usage:
        store = UpstreamTokenStore(client_id="...", client_secret="...")

        # After the user approves the app in GHL
        await store.exchange_authorization_code(code)

        # Before every API call
        token = await store.get_valid_access_token()
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str | None = None,
        *,
        token_url: str = GHL_TOKEN_URL,
        auth_url: str = GHL_AUTH_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        refresh_margin_ms: int = REFRESH_MARGIN_MS,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri or None
        self.token_url = token_url
        self.auth_url = auth_url
        self.timeout = timeout
        self.refresh_margin_ms = refresh_margin_ms

        self._http_client = http_client
        self._tokens: UpstreamTokenPair | None = None
        self._refresh_tasks: dict[str, asyncio.Task[UpstreamTokenPair]] = {}
        self._successors: dict[str, UpstreamTokenPair] = {}

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    async def _request_tokens(self, form: dict[str, str], action: str) -> UpstreamTokenPair:
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            **form,
        }
        try:
            async with self._http() as client:
                response = await client.post(
                    self.token_url,
                    data=data,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as e:
            logger.error("GHL token %s failed: %s", action, e)
            raise UpstreamAuthError(f"Token {action} failed: {e}") from e

        if response.status_code != 200:
            body = _error_body(response)
            logger.error("GHL token %s rejected: %s %s", action, response.status_code, body)
            raise UpstreamAuthError(
                f"Token {action} failed: {response.status_code}",
                status_code=response.status_code,
                details=body if isinstance(body, dict) else {"raw_response": body},
            )

        return UpstreamTokenPair.from_token_response(response.json())

    async def exchange_authorization_code(self, code: str) -> UpstreamTokenPair:
        """Exchange a GHL authorization code for tokens and store them.

        Raises:
            UpstreamAuthError: If GHL rejects the code
        """
        logger.info("Exchanging GHL authorization code for access token")
        form = {"grant_type": "authorization_code", "code": code}
        if self.redirect_uri:
            form["redirect_uri"] = self.redirect_uri

        tokens = await self._request_tokens(form, "exchange")
        self._tokens = tokens
        logger.info(
            "Obtained GHL access token (expires in %ss, scope=%r, location=%s)",
            tokens.expires_in_seconds,
            tokens.scope,
            tokens.location_id,
        )
        return tokens

    async def refresh(self) -> UpstreamTokenPair:
        """Refresh the access token, sharing one upstream call between callers.

        Raises:
            NotAuthenticatedError: If no refresh token is stored
            UpstreamAuthError: If GHL rejects the refresh
        """
        if self._tokens is None or not self._tokens.refresh_token:
            raise NotAuthenticatedError("No refresh token available")

        refresh_token = self._tokens.refresh_token
        task = self._refresh_tasks.get(refresh_token)
        if task is not None:
            logger.debug("GHL token refresh already in progress, waiting")
            return await asyncio.shield(task)

        logger.info("Refreshing GHL access token")
        task = asyncio.create_task(self._run_refresh(refresh_token), name="ghl-token-refresh")
        self._refresh_tasks[refresh_token] = task
        return await asyncio.shield(task)

    async def _run_refresh(self, refresh_token: str) -> UpstreamTokenPair:
        try:
            tokens = await self._request_tokens(
                {"grant_type": "refresh_token", "refresh_token": refresh_token},
                "refresh",
            )
            self._record_successor(refresh_token, tokens)
            # Another pair may have been set while the refresh was pending
            if self._tokens is not None and self._tokens.refresh_token == refresh_token:
                self._tokens = tokens
            logger.info("Refreshed GHL access token (expires in %ss)", tokens.expires_in_seconds)
            return tokens
        finally:
            self._refresh_tasks.pop(refresh_token, None)

    def _record_successor(self, refresh_token: str, tokens: UpstreamTokenPair) -> None:
        self._successors[refresh_token] = tokens
        while len(self._successors) > MAX_LINEAGE:
            self._successors.pop(next(iter(self._successors)))

    def successor_of(self, tokens: UpstreamTokenPair) -> UpstreamTokenPair:
        """Newest pair obtained by refreshing ``tokens``, or ``tokens`` itself."""
        current = tokens
        seen = set()
        while current.refresh_token in self._successors and current.refresh_token not in seen:
            seen.add(current.refresh_token)
            current = self._successors[current.refresh_token]
        return current

    async def get_valid_access_token(self) -> str:
        """Current access token, refreshed first when within the margin of expiry.

        Raises:
            NotAuthenticatedError: If no tokens are stored
        """
        tokens = self._tokens
        if tokens is None:
            raise NotAuthenticatedError("No GHL tokens available. Please authenticate first.")

        if tokens.needs_refresh(margin_ms=self.refresh_margin_ms):
            tokens = await self.refresh()

        return tokens.access_token

    def set_tokens(self, tokens: UpstreamTokenPair) -> None:
        self._tokens = tokens
        logger.debug("GHL tokens set")

    def get_tokens(self) -> UpstreamTokenPair | None:
        return self._tokens

    def has_tokens(self) -> bool:
        return self._tokens is not None

    def clear_tokens(self) -> None:
        self._tokens = None
        logger.debug("GHL tokens cleared")

    @property
    def refresh_in_progress(self) -> bool:
        return bool(self._refresh_tasks)

    def authorization_url(self, scopes: list[str], state: str | None = None) -> str:
        """GHL consent URL for installing the app on a location."""
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "scope": " ".join(scopes),
        }
        if self.redirect_uri:
            params["redirect_uri"] = self.redirect_uri
        if state:
            params["state"] = state
        return f"{self.auth_url}?{urlencode(params)}"
