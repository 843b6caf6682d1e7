"""Async test fixtures: file-backed SQLite, a fake upstream and the ASGI app."""

from __future__ import annotations

import asyncio
import json
from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ghl_bridge.app import create_app
from ghl_bridge.bridge import Bridge
from ghl_bridge.config import BridgeSettings
from ghl_bridge.database import build_engine, build_session_factory
from ghl_bridge.ghl.tokens import UpstreamTokenStore
from ghl_bridge.oauth.storage import OAuthStorage

STATIC_TOKEN = "static-test-token"


class FakeUpstream:
    """httpx handler standing in for GitHub and the GHL OAuth/resource APIs."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.token_forms: list[dict[str, str]] = []
        self.ghl_expires_in = 86400
        self.token_delay = 0.0
        self.token_failures = 0  # next N GHL token calls fail with 401
        self.github_error: str | None = None
        self.api_routes: dict[tuple[str, str], httpx.Response] = {}
        self.api_delays: dict[str, float] = {}  # access token -> seconds

    @property
    def token_calls(self) -> int:
        return len(self.token_forms)

    def api_calls(self) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.host == "services.leadconnectorhq.com" and r.url.path != "/oauth/token"
        ]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host, path = request.url.host, request.url.path

        if host == "github.com" and path == "/login/oauth/access_token":
            if self.github_error:
                return httpx.Response(200, json={"error": self.github_error, "error_description": "bad code"})
            return httpx.Response(200, json={"access_token": "gho_test", "token_type": "bearer"})

        if host == "api.github.com" and path == "/user":
            return httpx.Response(200, json={"login": "octocat", "id": 1})

        if host == "services.leadconnectorhq.com" and path == "/oauth/token":
            form = dict(parse_qsl(request.content.decode()))
            self.token_forms.append(form)
            if self.token_delay:
                await asyncio.sleep(self.token_delay)
            if self.token_failures > 0:
                self.token_failures -= 1
                return httpx.Response(401, json={"error": "invalid_grant", "error_description": "expired"})
            n = self.token_calls
            return httpx.Response(200, json={
                "access_token": f"ghl-access-{n}",
                "refresh_token": f"ghl-refresh-{n}",
                "expires_in": self.ghl_expires_in,
                "scope": "contacts.readonly contacts.write",
                "locationId": "loc_123",
                "userType": "Location",
            })

        if host == "services.leadconnectorhq.com":
            bearer = request.headers.get("Authorization", "").removeprefix("Bearer ")
            if bearer in self.api_delays:
                await asyncio.sleep(self.api_delays[bearer])
            route = self.api_routes.get((request.method, path))
            if route is not None:
                return route
            if request.headers.get("content-type", "").startswith("multipart/"):
                body = None
            else:
                body = json.loads(request.content) if request.content else None
            return httpx.Response(200, json={"method": request.method, "path": path, "body": body})

        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest_asyncio.fixture
async def http_client(upstream):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    yield client
    await client.aclose()


@pytest.fixture
def settings_obj(tmp_path):
    return BridgeSettings(
        _env_file=None,
        base_url="http://testserver",
        auth_token=STATIC_TOKEN,
        github_client_id="gh-client",
        github_client_secret="gh-secret",
        ghl_client_id="ghl-client",
        ghl_client_secret="ghl-secret",
        ghl_redirect_uri="http://testserver/ghl/callback",
        database_url=f"sqlite+aiosqlite:///{tmp_path}/oauth.db",
    )


@pytest_asyncio.fixture
async def storage(settings_obj):
    engine = build_engine(settings_obj)
    store = OAuthStorage(build_session_factory(engine), engine=engine)
    await store.init_schema()
    yield store
    await store.close()


@pytest.fixture
def token_store(http_client):
    return UpstreamTokenStore(
        "ghl-client",
        "ghl-secret",
        "http://testserver/ghl/callback",
        http_client=http_client,
    )


@pytest_asyncio.fixture
async def bridge(settings_obj, http_client):
    # ASGITransport does not run the lifespan, so start the bridge here
    b = Bridge.from_settings(settings_obj, http_client=http_client)
    await b.startup()
    yield b
    await b.shutdown()


@pytest_asyncio.fixture
async def client(bridge):
    """HTTPX async test client against the bridge app."""
    app = create_app(bridge=bridge)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
        yield ac


def rpc(method: str, params: dict | None = None, request_id: int | None = 1) -> dict:
    payload: dict = {"jsonrpc": "2.0", "method": method}
    if request_id is not None:
        payload["id"] = request_id
    if params is not None:
        payload["params"] = params
    return payload
