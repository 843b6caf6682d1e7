"""FastAPI application factory for the GHL MCP bridge."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .bridge import Bridge
from .config import BridgeSettings, settings
from .routers import ghl, health, mcp, oauth

logger = logging.getLogger(__name__)


def create_app(settings_obj: BridgeSettings | None = None, bridge: Bridge | None = None) -> FastAPI:
    """Build the HTTP app. A prebuilt ``bridge`` is used as-is (tests inject one)."""
    settings_obj = settings_obj or (bridge.settings if bridge else settings)
    bridge = bridge or Bridge.from_settings(settings_obj)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        missing = settings_obj.missing_required()
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Set them in the environment or a .env file before starting."
            )
        await bridge.startup()
        logger.info("GHL MCP HTTP server ready at %s/mcp", settings_obj.server_url)
        yield
        await bridge.shutdown()

    app = FastAPI(title="GHL MCP Bridge", version=__version__, lifespan=lifespan)
    app.state.bridge = bridge

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["WWW-Authenticate"],
    )

    app.include_router(health.router)
    app.include_router(ghl.router)
    app.include_router(mcp.router)
    if bridge.oauth_enabled:
        app.include_router(oauth.router)

    return app

