"""Tests for the /mcp JSON-RPC endpoint and the GHL consent callback."""

from __future__ import annotations

import asyncio
import json
from urllib.parse import parse_qs, urlparse

import pytest

from ghl_bridge.clock import now_ms
from ghl_bridge.ghl.tokens import UpstreamTokenPair
from ghl_bridge.rpc.server import RequestContext
from ghl_bridge.security import STATIC_CLIENT_ID, Principal

from .conftest import STATIC_TOKEN, rpc

AUTH = {"Authorization": f"Bearer {STATIC_TOKEN}"}


def tool_payload(response) -> dict:
    return json.loads(response.json()["result"]["content"][0]["text"])


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_initialize_without_credentials(self, client):
        resp = await client.post("/mcp", json=rpc("initialize", {"protocolVersion": "2024-11-05"}))

        assert resp.status_code == 200
        result = resp.json()["result"]
        assert result["protocolVersion"] == "2024-11-05"
        assert result["serverInfo"]["name"] == "ghl-mcp-server"
        assert "tools" in result["capabilities"]

    @pytest.mark.asyncio
    async def test_missing_credentials(self, client):
        resp = await client.post("/mcp", json=rpc("tools/list"))

        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == -32001
        assert "oauth-authorization-server" in resp.headers["www-authenticate"]

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        resp = await client.post("/mcp", json=rpc("tools/list"), headers={"Authorization": "Bearer wrong"})
        assert resp.status_code == 401

    @pytest.mark.asyncio
    async def test_static_bearer_token(self, client):
        resp = await client.post("/mcp", json=rpc("tools/list"), headers=AUTH)

        assert resp.status_code == 200
        names = {t["name"] for t in resp.json()["result"]["tools"]}
        assert {"ghl_get_contact", "ghl_add_tag", "ghl_search_opportunities"} <= names


class TestProtocol:
    @pytest.mark.asyncio
    async def test_parse_error(self, client):
        resp = await client.post("/mcp", content=b"{not json", headers=AUTH)

        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == -32700

    @pytest.mark.asyncio
    async def test_invalid_request(self, client):
        resp = await client.post("/mcp", json={"jsonrpc": "1.0", "id": 3, "method": "ping"}, headers=AUTH)

        assert resp.json()["error"]["code"] == -32600
        assert resp.json()["id"] == 3

    @pytest.mark.asyncio
    async def test_unknown_method(self, client):
        resp = await client.post("/mcp", json=rpc("resources/list"), headers=AUTH)
        assert resp.json()["error"]["code"] == -32601

    @pytest.mark.asyncio
    async def test_ping(self, client):
        resp = await client.post("/mcp", json=rpc("ping", request_id=7), headers=AUTH)
        assert resp.json() == {"jsonrpc": "2.0", "id": 7, "result": {}}

    @pytest.mark.asyncio
    async def test_notification_has_no_body(self, client):
        resp = await client.post("/mcp", json=rpc("notifications/initialized", request_id=None), headers=AUTH)

        assert resp.status_code == 202
        assert resp.content == b""

    @pytest.mark.asyncio
    async def test_unknown_tool(self, client):
        resp = await client.post("/mcp", json=rpc("tools/call", {"name": "ghl_nope"}), headers=AUTH)
        assert resp.json()["error"]["code"] == -32602

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, client, bridge):
        bridge.token_store.set_tokens(UpstreamTokenPair("a", "r", expires_at=now_ms() + 3_600_000))
        resp = await client.post(
            "/mcp",
            json=rpc("tools/call", {"name": "ghl_get_contact", "arguments": {"wrong": 1}}),
            headers=AUTH,
        )
        assert resp.json()["error"]["code"] == -32602


class TestDualOAuthFlow:
    @pytest.mark.asyncio
    async def test_consent_required_then_bound_session(self, client, bridge, upstream):
        """tools/call without GHL tokens returns a consent URL; the callback binds the session."""
        call = rpc("tools/call", {"name": "ghl_get_contact", "arguments": {"contactId": "c1"}})

        resp = await client.post("/mcp", json=call, headers=AUTH)
        result = resp.json()["result"]
        assert result["isError"] is True
        payload = json.loads(result["content"][0]["text"])
        assert payload["code"] == "not_authenticated"
        session_id = parse_qs(urlparse(payload["authUrl"]).query)["state"][0]
        assert bridge.sessions.get(session_id) is not None

        resp = await client.get("/ghl/callback", params={"code": "ghl-code", "state": session_id})
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["sessionBound"] is True
        assert bridge.sessions.get(session_id).upstream_tokens.access_token == "ghl-access-1"

        resp = await client.post("/mcp", json=call, headers=AUTH)
        assert "isError" not in resp.json()["result"]
        assert tool_payload(resp)["path"] == "/contacts/c1"
        assert upstream.api_calls()[-1].headers["Authorization"] == "Bearer ghl-access-1"

    @pytest.mark.asyncio
    async def test_refreshed_tokens_written_back_to_session(self, client, bridge, upstream):
        await client.post("/mcp", json=rpc("ping"), headers=AUTH)
        session = bridge.sessions.resolve(STATIC_TOKEN)
        bridge.sessions.bind(session.id, UpstreamTokenPair("stale", "refresh-1", expires_at=now_ms()))

        resp = await client.post(
            "/mcp",
            json=rpc("tools/call", {"name": "ghl_list_tags", "arguments": {"locationId": "loc1"}}),
            headers=AUTH,
        )

        assert tool_payload(resp)["path"] == "/locations/loc1/tags"
        assert upstream.token_calls == 1
        assert session.upstream_tokens.access_token == "ghl-access-1"

    @pytest.mark.asyncio
    async def test_upstream_error_becomes_tool_error(self, client, bridge, upstream):
        import httpx

        bridge.token_store.set_tokens(UpstreamTokenPair("a", "r", expires_at=now_ms() + 3_600_000))
        upstream.api_routes[("GET", "/contacts/gone")] = httpx.Response(404, json={"message": "not found"})

        resp = await client.post(
            "/mcp",
            json=rpc("tools/call", {"name": "ghl_get_contact", "arguments": {"contactId": "gone"}}),
            headers=AUTH,
        )

        result = resp.json()["result"]
        assert result["isError"] is True
        payload = json.loads(result["content"][0]["text"])
        assert payload["status"] == 404
        assert payload["body"] == {"message": "not found"}

    @pytest.mark.asyncio
    async def test_ghl_callback_missing_code(self, client):
        resp = await client.get("/ghl/callback")
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_ghl_callback_rejected(self, client, upstream):
        upstream.token_failures = 1
        resp = await client.get("/ghl/callback", params={"code": "bad"})

        assert resp.status_code == 502
        assert resp.json()["code"] == "upstream_auth_error"


class TestSessionIsolation:
    """Concurrent tool calls from different sessions share one token store."""

    def context(self, bridge, credential: str, tokens: UpstreamTokenPair) -> RequestContext:
        ctx = bridge.context_for(Principal(credential=credential, kind="bearer", client_id=STATIC_CLIENT_ID))
        bridge.sessions.bind(ctx.session_id, tokens)
        return ctx

    def call(self, bridge, ctx: RequestContext):
        return bridge.server.execute("ghl_list_tags", {"locationId": "loc1"}, ctx)

    @pytest.mark.asyncio
    async def test_slow_call_keeps_its_own_tokens(self, bridge, upstream):
        tokens_a = UpstreamTokenPair("token-A", "refresh-A", expires_at=now_ms() + 3_600_000)
        tokens_b = UpstreamTokenPair("token-B", "refresh-B", expires_at=now_ms() + 3_600_000)
        ctx_a = self.context(bridge, "caller-a", tokens_a)
        ctx_b = self.context(bridge, "caller-b", tokens_b)
        upstream.api_delays["token-A"] = 0.05

        results = await asyncio.gather(self.call(bridge, ctx_a), self.call(bridge, ctx_b))

        assert all("isError" not in r for r in results)
        assert bridge.sessions.get(ctx_a.session_id).upstream_tokens is tokens_a
        assert bridge.sessions.get(ctx_b.session_id).upstream_tokens is tokens_b
        bearers = sorted(r.headers["Authorization"] for r in upstream.api_calls())
        assert bearers == ["Bearer token-A", "Bearer token-B"]

    @pytest.mark.asyncio
    async def test_refresh_is_written_back_only_to_its_session(self, bridge, upstream):
        stale_a = UpstreamTokenPair("stale-A", "refresh-A", expires_at=now_ms())
        tokens_b = UpstreamTokenPair("token-B", "refresh-B", expires_at=now_ms() + 3_600_000)
        ctx_a = self.context(bridge, "caller-a", stale_a)
        ctx_b = self.context(bridge, "caller-b", tokens_b)
        upstream.token_delay = 0.05

        await asyncio.gather(self.call(bridge, ctx_a), self.call(bridge, ctx_b))

        assert upstream.token_calls == 1
        assert upstream.token_forms[0]["refresh_token"] == "refresh-A"
        assert bridge.sessions.get(ctx_a.session_id).upstream_tokens.access_token == "ghl-access-1"
        assert bridge.sessions.get(ctx_b.session_id).upstream_tokens is tokens_b
        assert bridge.token_store.get_tokens() is tokens_b
