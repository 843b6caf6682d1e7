"""Tests for the authenticated GHL request dispatcher."""

from __future__ import annotations

import httpx
import pytest

from ghl_bridge.errors import NotAuthenticatedError, UpstreamAPIError
from ghl_bridge.ghl.client import GHLClient
from ghl_bridge.ghl.tokens import UpstreamTokenPair, UpstreamTokenStore
from ghl_bridge.clock import now_ms


def live_pair() -> UpstreamTokenPair:
    return UpstreamTokenPair(
        access_token="live-access",
        refresh_token="live-refresh",
        expires_at=now_ms() + 60 * 60 * 1000,
    )


@pytest.fixture
def ghl(token_store, http_client):
    return GHLClient(token_store, http_client=http_client)


class TestGHLClient:
    """Tests for GHLClient.call and helpers."""

    @pytest.mark.asyncio
    async def test_injects_auth_and_version_headers(self, ghl, token_store, upstream):
        token_store.set_tokens(live_pair())

        await ghl.get("/contacts/abc")

        request = upstream.api_calls()[0]
        assert request.headers["Authorization"] == "Bearer live-access"
        assert request.headers["Version"] == "2021-07-28"
        assert request.url.path == "/contacts/abc"

    @pytest.mark.asyncio
    async def test_drops_none_params(self, ghl, token_store, upstream):
        token_store.set_tokens(live_pair())

        await ghl.get("/contacts/", locationId="loc1", query=None)

        request = upstream.api_calls()[0]
        assert dict(request.url.params) == {"locationId": "loc1"}

    @pytest.mark.asyncio
    async def test_sends_json_body(self, ghl, token_store):
        token_store.set_tokens(live_pair())

        result = await ghl.post("/contacts/", {"email": "a@b.com"})

        assert result["body"] == {"email": "a@b.com"}
        assert result["method"] == "POST"

    @pytest.mark.asyncio
    async def test_without_tokens(self, ghl, upstream):
        with pytest.raises(NotAuthenticatedError):
            await ghl.get("/contacts/abc")
        assert upstream.api_calls() == []

    @pytest.mark.asyncio
    async def test_non_success_raises_with_status_and_body(self, ghl, token_store, upstream):
        token_store.set_tokens(live_pair())
        upstream.api_routes[("GET", "/contacts/missing")] = httpx.Response(
            404, json={"message": "Contact not found"}
        )

        with pytest.raises(UpstreamAPIError) as exc_info:
            await ghl.get("/contacts/missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.body == {"message": "Contact not found"}
        assert exc_info.value.to_dict()["code"] == "upstream_api_error"

    @pytest.mark.asyncio
    async def test_transport_failure_has_no_status(self):
        def boom(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(boom)) as http:
            store = UpstreamTokenStore("id", "secret", http_client=http)
            store.set_tokens(live_pair())
            ghl = GHLClient(store, http_client=http)

            with pytest.raises(UpstreamAPIError) as exc_info:
                await ghl.get("/contacts/abc")

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_empty_body_returns_empty_dict(self, ghl, token_store, upstream):
        token_store.set_tokens(live_pair())
        upstream.api_routes[("DELETE", "/contacts/abc")] = httpx.Response(204)

        assert await ghl.delete("/contacts/abc") == {}

    @pytest.mark.asyncio
    async def test_refreshes_expiring_token_before_call(self, ghl, token_store, upstream):
        token_store.set_tokens(UpstreamTokenPair("stale", "refresh-me", expires_at=now_ms()))

        await ghl.get("/contacts/abc")

        assert upstream.token_calls == 1
        assert upstream.api_calls()[0].headers["Authorization"] == "Bearer ghl-access-1"
