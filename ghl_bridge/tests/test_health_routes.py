"""Tests for health routes and application wiring."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from ghl_bridge.app import create_app
from ghl_bridge.bridge import Bridge
from ghl_bridge.config import BridgeSettings


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/health")

    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["server"] == "ghl-mcp-server"
    assert data["oauth"] == "enabled"
    assert data["ghl_authenticated"] is False
    assert data["sessions"] == 0


@pytest.mark.asyncio
async def test_ready(client):
    resp = await client.get("/ready")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ready"


@pytest.mark.asyncio
async def test_cors_preflight(client):
    resp = await client.options(
        "/mcp",
        headers={
            "Origin": "https://agent.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Authorization",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_oauth_routes_absent_without_github(tmp_path):
    settings_obj = BridgeSettings(
        _env_file=None,
        auth_token="t",
        github_client_id="",
        github_client_secret="",
        ghl_client_id="id",
        ghl_client_secret="secret",
        database_url=f"sqlite+aiosqlite:///{tmp_path}/oauth.db",
    )
    bridge = Bridge.from_settings(settings_obj)
    app = create_app(bridge=bridge)
    await bridge.startup()
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as ac:
            assert (await ac.get("/.well-known/oauth-authorization-server")).status_code == 404
            assert (await ac.get("/health")).json()["oauth"] == "disabled"
    finally:
        await bridge.shutdown()


@pytest.mark.asyncio
async def test_lifespan_rejects_missing_credentials(tmp_path):
    settings_obj = BridgeSettings(
        _env_file=None,
        auth_token="",
        ghl_client_id="",
        ghl_client_secret="",
        database_url=f"sqlite+aiosqlite:///{tmp_path}/oauth.db",
    )
    app = create_app(settings_obj)

    with pytest.raises(RuntimeError, match="AUTH_TOKEN"):
        async with app.router.lifespan_context(app):
            pass


def test_missing_required():
    settings_obj = BridgeSettings(_env_file=None, auth_token="x", ghl_client_id="", ghl_client_secret="s")
    assert settings_obj.missing_required() == ["GHL_CLIENT_ID"]


def test_sqlite_path(tmp_path):
    settings_obj = BridgeSettings(_env_file=None, database_url=f"sqlite+aiosqlite:///{tmp_path}/db/oauth.db")
    assert settings_obj.sqlite_path == tmp_path / "db" / "oauth.db"
    assert BridgeSettings(_env_file=None, database_url="sqlite+aiosqlite:///:memory:").sqlite_path is None
