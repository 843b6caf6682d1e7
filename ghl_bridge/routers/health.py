"""Health and readiness checks."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from .. import __version__
from ..bridge import Bridge
from ..deps import get_bridge
from ..rpc.server import SERVER_NAME

router = APIRouter()


@router.get("/health")
async def health_check(bridge: Bridge = Depends(get_bridge)):
    return {
        "status": "ok",
        "server": SERVER_NAME,
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "oauth": "enabled" if bridge.oauth_enabled else "disabled",
        "ghl_authenticated": bridge.token_store.has_tokens(),
        "sessions": len(bridge.sessions),
    }


@router.get("/ready")
async def readiness_check(bridge: Bridge = Depends(get_bridge)):
    await bridge.storage.ping()
    return {"status": "ready", "server": SERVER_NAME}
