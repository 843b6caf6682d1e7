"""GitHub-backed OAuth authorization server for calling agents.

The bridge acts as the authorization server for MCP clients but delegates user
login to GitHub:

1. ``authorize`` parks the client's request under a random correlation token
   and redirects the browser to GitHub with that token as ``state``
2. ``handle_callback`` trades GitHub's code for a GitHub token, consumes the
   correlation row and mints an internal authorization code
3. ``exchange_authorization_code`` turns the internal code into an opaque
   bearer token valid for one hour
"""

from __future__ import annotations

import logging
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator
from urllib.parse import urlencode

import httpx

from ..clock import now_ms
from ..errors import (
    InvalidGrantError,
    InvalidStateError,
    InvalidTokenError,
    UnsupportedGrantError,
    UpstreamAuthError,
)
from .schemas import OAuthClientInformation, TokenResponse
from .storage import CODE_KIND, STATE_KIND, OAuthCodeData, OAuthStorage, OAuthTokenData

logger = logging.getLogger(__name__)

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"
GITHUB_USER_URL = "https://api.github.com/user"
GITHUB_SCOPES = "read:user user:email"

CODE_TTL_MS = 10 * 60 * 1000
TOKEN_TTL_MS = 60 * 60 * 1000


def _new_secret() -> str:
    return secrets.token_urlsafe(32)


@dataclass
class AuthorizeParams:
    redirect_uri: str
    code_challenge: str
    code_challenge_method: str | None = None
    scopes: list[str] = field(default_factory=list)
    resource: str | None = None
    state: str | None = None


@dataclass
class CallbackResult:
    """Where to send the browser once GitHub login completes."""

    redirect_uri: str
    auth_code: str
    client_state: str | None = None

    @property
    def redirect_url(self) -> str:
        params = {"code": self.auth_code}
        if self.client_state:
            params["state"] = self.client_state
        sep = "&" if "?" in self.redirect_uri else "?"
        return f"{self.redirect_uri}{sep}{urlencode(params)}"


@dataclass(frozen=True)
class AccessTokenInfo:
    token: str
    client_id: str
    scopes: list[str]
    expires_at: int  # Unix seconds
    resource: str | None = None


class GitHubOAuthProvider:
    """OAuth provider issuing bridge tokens after a GitHub login.

    Usage:
        provider = GitHubOAuthProvider(
            github_client_id="...",
            github_client_secret="...",
            base_url="https://bridge.example.com",
            storage=storage,
        )
        url = await provider.authorize(client, AuthorizeParams(...))
        result = await provider.handle_callback(code, state)
        tokens = await provider.exchange_authorization_code(client, result.auth_code)
    """

    def __init__(
        self,
        github_client_id: str,
        github_client_secret: str,
        base_url: str,
        storage: OAuthStorage,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.github_client_id = github_client_id
        self.github_client_secret = github_client_secret
        self.base_url = base_url.rstrip("/")
        self.storage = storage
        self.timeout = timeout
        self._http_client = http_client

    @property
    def callback_url(self) -> str:
        return f"{self.base_url}/oauth/callback"

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            yield client

    # Client registry passthrough

    async def get_client(self, client_id: str) -> OAuthClientInformation | None:
        return await self.storage.get_client(client_id)

    async def register_client(self, client: OAuthClientInformation) -> OAuthClientInformation:
        return await self.storage.register_client(client)

    # Authorization

    async def authorize(self, client: OAuthClientInformation, params: AuthorizeParams) -> str:
        """Park the authorization request and build the GitHub login URL.

        Args:
            client: Registered client making the request
            params: Validated authorize parameters

        Returns:
            GitHub authorize URL carrying the correlation token as ``state``
        """
        internal_state = _new_secret()
        await self.storage.save_code(
            internal_state,
            OAuthCodeData(
                kind=STATE_KIND,
                client_id=client.client_id,
                redirect_uri=params.redirect_uri,
                scopes=" ".join(params.scopes) if params.scopes else None,
                resource=params.resource,
                state=params.state,
                code_challenge=params.code_challenge,
                code_challenge_method=params.code_challenge_method,
                expires_at=now_ms() + CODE_TTL_MS,
            ),
        )

        query = urlencode({
            "client_id": self.github_client_id,
            "redirect_uri": self.callback_url,
            "state": internal_state,
            "scope": GITHUB_SCOPES,
        })
        logger.info("Redirecting client %s to GitHub login", client.client_id)
        return f"{GITHUB_AUTHORIZE_URL}?{query}"

    async def _exchange_github_code(self, client: httpx.AsyncClient, code: str) -> str:
        try:
            response = await client.post(
                GITHUB_TOKEN_URL,
                json={
                    "client_id": self.github_client_id,
                    "client_secret": self.github_client_secret,
                    "code": code,
                    "redirect_uri": self.callback_url,
                },
                headers={"Accept": "application/json"},
            )
        except httpx.HTTPError as e:
            raise UpstreamAuthError(f"GitHub token exchange failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        # GitHub reports most failures as 200 with an "error" field
        if response.status_code != 200 or data.get("error") or not data.get("access_token"):
            description = data.get("error_description") or data.get("error") or response.status_code
            raise UpstreamAuthError(
                f"GitHub OAuth error: {description}",
                status_code=response.status_code,
                details={k: v for k, v in data.items() if k in ("error", "error_description")},
            )
        return data["access_token"]

    async def _fetch_github_user(self, client: httpx.AsyncClient, github_token: str) -> dict:
        try:
            response = await client.get(
                GITHUB_USER_URL,
                headers={"Authorization": f"Bearer {github_token}", "Accept": "application/json"},
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Could not fetch GitHub user: %s", e)
            return {}

    async def handle_callback(self, code: str, state: str) -> CallbackResult:
        """Complete the GitHub round-trip and mint an internal authorization code.

        Args:
            code: Authorization code from GitHub
            state: Correlation token issued by ``authorize``

        Returns:
            CallbackResult with the client's redirect URI, new code and state

        Raises:
            InvalidStateError: If the correlation token is unknown, expired or used
            UpstreamAuthError: If GitHub rejects the code
        """
        request = await self.storage.get_code(state, kind=STATE_KIND)
        if request is None:
            raise InvalidStateError("Invalid state parameter")

        async with self._http() as client:
            github_token = await self._exchange_github_code(client, code)
            user = await self._fetch_github_user(client, github_token)
        logger.info("GitHub user authenticated: login=%s id=%s", user.get("login"), user.get("id"))

        # A concurrent callback with the same state may have won the race
        if not await self.storage.delete_code(state, kind=STATE_KIND):
            raise InvalidStateError("State parameter already used")

        auth_code = _new_secret()
        await self.storage.save_code(
            auth_code,
            OAuthCodeData(
                client_id=request.client_id,
                redirect_uri=request.redirect_uri,
                scopes=request.scopes,
                resource=request.resource,
                state=request.state,
                code_challenge=request.code_challenge,
                code_challenge_method=request.code_challenge_method,
                expires_at=now_ms() + CODE_TTL_MS,
            ),
        )

        # Pre-minted token; nothing hands it out, it simply expires
        await self.storage.save_token(
            _new_secret(),
            OAuthTokenData(
                client_id=request.client_id,
                scopes=request.scopes or "",
                expires_at=now_ms() + TOKEN_TTL_MS,
                resource=request.resource,
            ),
        )

        return CallbackResult(
            redirect_uri=request.redirect_uri,
            auth_code=auth_code,
            client_state=request.state,
        )

    async def _load_code(self, client: OAuthClientInformation, code: str) -> OAuthCodeData:
        data = await self.storage.get_code(code, kind=CODE_KIND)
        if data is None:
            raise InvalidGrantError("Invalid authorization code")
        if data.client_id != client.client_id:
            raise InvalidGrantError("Authorization code was not issued to this client")
        return data

    async def pkce_challenge(self, client: OAuthClientInformation, code: str) -> tuple[str, str | None]:
        """Stored PKCE challenge and method for a code.

        Raises:
            InvalidGrantError: If the code is unknown, expired or foreign
        """
        data = await self._load_code(client, code)
        return data.code_challenge, data.code_challenge_method

    async def challenge_for_authorization_code(self, client: OAuthClientInformation, code: str) -> str:
        challenge, _ = await self.pkce_challenge(client, code)
        return challenge

    async def exchange_authorization_code(
        self,
        client: OAuthClientInformation,
        code: str,
        code_verifier: str | None = None,
        redirect_uri: str | None = None,
        resource: str | None = None,
    ) -> TokenResponse:
        """Consume an authorization code and issue a bearer token.

        PKCE verification of ``code_verifier`` happens in the token endpoint.

        Raises:
            InvalidGrantError: If the code is unknown, expired, foreign, already
                consumed, or ``redirect_uri`` differs from the authorized one
        """
        data = await self._load_code(client, code)
        if redirect_uri is not None and redirect_uri != data.redirect_uri:
            raise InvalidGrantError("redirect_uri does not match the authorization request")

        if not await self.storage.delete_code(code, kind=CODE_KIND):
            raise InvalidGrantError("Authorization code already used")

        token = _new_secret()
        await self.storage.save_token(
            token,
            OAuthTokenData(
                client_id=client.client_id,
                scopes=data.scopes or "",
                expires_at=now_ms() + TOKEN_TTL_MS,
                resource=data.resource,
            ),
        )
        logger.info("OAuth token issued: client=%s expires_in=%d", client.client_id, TOKEN_TTL_MS // 1000)
        return TokenResponse(
            access_token=token,
            token_type="bearer",
            expires_in=TOKEN_TTL_MS // 1000,
            scope=" ".join(data.scope_list),
        )

    async def exchange_refresh_token(
        self,
        client: OAuthClientInformation,
        refresh_token: str,
        scopes: list[str] | None = None,
        resource: str | None = None,
    ) -> TokenResponse:
        raise UnsupportedGrantError("Refresh tokens are not supported")

    async def verify_access_token(self, token: str) -> AccessTokenInfo:
        """Look up an issued bearer token.

        Raises:
            InvalidTokenError: If the token is unknown or expired
        """
        data = await self.storage.get_token(token)
        if data is None:
            raise InvalidTokenError("Invalid or expired token")
        return AccessTokenInfo(
            token=token,
            client_id=data.client_id,
            scopes=data.scope_list,
            expires_at=data.expires_at // 1000,
            resource=data.resource or None,
        )

    async def revoke_token(self, token: str, client_id: str | None = None) -> bool:
        """Delete an issued token; a token owned by another client is left alone."""
        if client_id is not None:
            data = await self.storage.get_token(token)
            if data is None or data.client_id != client_id:
                return False
        revoked = await self.storage.delete_token(token)
        if revoked:
            logger.info("OAuth token revoked")
        return revoked
