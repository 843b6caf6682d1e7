"""Tests for the GitHub-backed OAuth provider."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
import pytest_asyncio

from ghl_bridge.clock import now_ms
from ghl_bridge.errors import (
    InvalidGrantError,
    InvalidStateError,
    InvalidTokenError,
    UnsupportedGrantError,
    UpstreamAuthError,
)
from ghl_bridge.oauth.pkce import s256_challenge
from ghl_bridge.oauth.provider import AuthorizeParams, GitHubOAuthProvider
from ghl_bridge.oauth.schemas import OAuthClientInformation

REDIRECT = "http://localhost:8080/callback"
VERIFIER = "v" * 64


def make_client(client_id: str) -> OAuthClientInformation:
    return OAuthClientInformation(client_id=client_id, client_secret="secret", redirect_uris=[REDIRECT])


@pytest_asyncio.fixture
async def provider(storage, http_client):
    p = GitHubOAuthProvider("gh-client", "gh-secret", "http://testserver/", storage, http_client=http_client)
    await p.register_client(make_client("client-a"))
    await p.register_client(make_client("client-b"))
    return p


@pytest.fixture
def client_a():
    return make_client("client-a")


async def start_login(provider, client) -> str:
    url = await provider.authorize(
        client,
        AuthorizeParams(
            redirect_uri=REDIRECT,
            code_challenge=s256_challenge(VERIFIER),
            code_challenge_method="S256",
            scopes=["mcp:tools"],
            state="client-xyz",
        ),
    )
    return parse_qs(urlparse(url).query)["state"][0]


class TestAuthorize:
    @pytest.mark.asyncio
    async def test_redirects_to_github(self, provider, client_a, storage):
        url = await provider.authorize(
            client_a,
            AuthorizeParams(redirect_uri=REDIRECT, code_challenge="c", code_challenge_method="S256"),
        )

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.netloc == "github.com"
        assert query["client_id"] == ["gh-client"]
        assert query["redirect_uri"] == ["http://testserver/oauth/callback"]
        assert query["scope"] == ["read:user user:email"]

        pending = await storage.get_code(query["state"][0])
        assert pending.client_id == "client-a"
        assert pending.redirect_uri == REDIRECT


class TestCallback:
    @pytest.mark.asyncio
    async def test_unknown_state(self, provider):
        with pytest.raises(InvalidStateError):
            await provider.handle_callback("gh-code", "never-issued")

    @pytest.mark.asyncio
    async def test_success_mints_code_and_consumes_state(self, provider, client_a, storage):
        state = await start_login(provider, client_a)

        result = await provider.handle_callback("gh-code", state)

        assert result.redirect_uri == REDIRECT
        assert result.client_state == "client-xyz"
        assert await storage.get_code(state) is None
        minted = await storage.get_code(result.auth_code)
        assert minted.client_id == "client-a"
        assert minted.code_challenge == s256_challenge(VERIFIER)

        query = parse_qs(urlparse(result.redirect_url).query)
        assert query == {"code": [result.auth_code], "state": ["client-xyz"]}

    @pytest.mark.asyncio
    async def test_state_is_one_time(self, provider, client_a):
        state = await start_login(provider, client_a)
        await provider.handle_callback("gh-code", state)

        with pytest.raises(InvalidStateError):
            await provider.handle_callback("gh-code", state)

    @pytest.mark.asyncio
    async def test_github_rejection_keeps_state(self, provider, client_a, storage, upstream):
        upstream.github_error = "bad_verification_code"
        state = await start_login(provider, client_a)

        with pytest.raises(UpstreamAuthError):
            await provider.handle_callback("gh-code", state)

        assert await storage.get_code(state) is not None

    @pytest.mark.asyncio
    async def test_issued_code_is_not_a_state(self, provider, client_a):
        state = await start_login(provider, client_a)
        result = await provider.handle_callback("gh-code", state)

        with pytest.raises(InvalidStateError):
            await provider.handle_callback("gh-code", result.auth_code)


class TestExchange:
    @pytest_asyncio.fixture
    async def auth_code(self, provider, client_a):
        state = await start_login(provider, client_a)
        result = await provider.handle_callback("gh-code", state)
        return result.auth_code

    @pytest.mark.asyncio
    async def test_issues_bearer_token(self, provider, client_a, auth_code):
        tokens = await provider.exchange_authorization_code(client_a, auth_code, VERIFIER, REDIRECT)

        assert tokens.token_type == "bearer"
        assert tokens.expires_in == 3600
        assert tokens.scope == "mcp:tools"

        info = await provider.verify_access_token(tokens.access_token)
        assert info.client_id == "client-a"
        assert info.scopes == ["mcp:tools"]
        assert abs(info.expires_at - (now_ms() // 1000 + 3600)) <= 5

    @pytest.mark.asyncio
    async def test_code_is_one_time(self, provider, client_a, auth_code):
        await provider.exchange_authorization_code(client_a, auth_code, VERIFIER, REDIRECT)

        with pytest.raises(InvalidGrantError):
            await provider.exchange_authorization_code(client_a, auth_code, VERIFIER, REDIRECT)

    @pytest.mark.asyncio
    async def test_foreign_client(self, provider, auth_code):
        with pytest.raises(InvalidGrantError):
            await provider.exchange_authorization_code(make_client("client-b"), auth_code, VERIFIER, REDIRECT)

    @pytest.mark.asyncio
    async def test_redirect_uri_mismatch(self, provider, client_a, auth_code):
        with pytest.raises(InvalidGrantError):
            await provider.exchange_authorization_code(client_a, auth_code, VERIFIER, "http://evil/cb")

    @pytest.mark.asyncio
    async def test_challenge_lookup(self, provider, client_a, auth_code):
        assert await provider.challenge_for_authorization_code(client_a, auth_code) == s256_challenge(VERIFIER)
        assert await provider.pkce_challenge(client_a, auth_code) == (s256_challenge(VERIFIER), "S256")

    @pytest.mark.asyncio
    async def test_pending_login_is_not_a_code(self, provider, client_a, storage):
        state = await start_login(provider, client_a)

        with pytest.raises(InvalidGrantError):
            await provider.pkce_challenge(client_a, state)
        with pytest.raises(InvalidGrantError):
            await provider.exchange_authorization_code(client_a, state, VERIFIER, REDIRECT)
        assert await storage.get_code(state) is not None

    @pytest.mark.asyncio
    async def test_refresh_grant_unsupported(self, provider, client_a):
        with pytest.raises(UnsupportedGrantError):
            await provider.exchange_refresh_token(client_a, "anything")


class TestTokens:
    @pytest.mark.asyncio
    async def test_unknown_token(self, provider):
        with pytest.raises(InvalidTokenError):
            await provider.verify_access_token("nope")

    @pytest.mark.asyncio
    async def test_revoke(self, provider, client_a):
        state = await start_login(provider, client_a)
        result = await provider.handle_callback("gh-code", state)
        tokens = await provider.exchange_authorization_code(client_a, result.auth_code, VERIFIER, REDIRECT)

        assert await provider.revoke_token(tokens.access_token, client_id="client-b") is False
        assert await provider.revoke_token(tokens.access_token, client_id="client-a") is True
        with pytest.raises(InvalidTokenError):
            await provider.verify_access_token(tokens.access_token)
