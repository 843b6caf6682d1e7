"""GHL consent callback: completes the upstream half of the dual OAuth."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..bridge import Bridge
from ..deps import get_bridge
from ..errors import BridgeError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ghl", tags=["ghl"])


@router.get("/callback")
async def ghl_callback(
    code: str | None = None,
    state: str | None = None,
    bridge: Bridge = Depends(get_bridge),
):
    if not code:
        return JSONResponse({"error": "Missing authorization code"}, status_code=400)

    try:
        tokens, bound = await bridge.complete_ghl_authorization(code, state)
    except BridgeError as e:
        logger.error("GHL OAuth callback error: %s", e.message)
        return JSONResponse(e.to_dict(), status_code=502)

    return {
        "success": True,
        "message": "GHL authentication successful",
        "expiresAt": datetime.fromtimestamp(tokens.expires_at / 1000, tz=timezone.utc).isoformat(),
        "locationId": tokens.location_id,
        "sessionBound": bound,
    }
