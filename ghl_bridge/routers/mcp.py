"""MCP JSON-RPC endpoint with dual (OAuth or static bearer) authentication."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from ..bridge import Bridge
from ..deps import get_bridge
from ..errors import InvalidTokenError
from ..rpc.server import UNAUTHORIZED, RPCError, error_response, parse_request
from ..security import extract_bearer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["mcp"])

UNAUTHENTICATED_METHODS = {"initialize"}


def _unauthorized(bridge: Bridge, request_id=None) -> JSONResponse:
    metadata = f"{bridge.settings.server_url}/.well-known/oauth-authorization-server"
    challenge = 'Bearer error="invalid_token"'
    if bridge.oauth_enabled:
        challenge += f', resource_metadata="{metadata}"'
    return JSONResponse(
        error_response(request_id, UNAUTHORIZED, "Unauthorized"),
        status_code=401,
        headers={"WWW-Authenticate": challenge},
    )


@router.post("/mcp")
async def mcp_endpoint(request: Request, bridge: Bridge = Depends(get_bridge)):
    try:
        rpc_request = parse_request(await request.body())
    except RPCError as e:
        return JSONResponse(e.response(), status_code=400)

    context = None
    if rpc_request.method not in UNAUTHENTICATED_METHODS:
        credential = extract_bearer(request.headers.get("authorization"))
        if credential is None:
            logger.warning("Authentication failed: missing bearer token (method=%s)", rpc_request.method)
            return _unauthorized(bridge, rpc_request.id)
        try:
            principal = await bridge.authenticate(credential)
        except InvalidTokenError:
            logger.warning("Authentication failed: invalid token (method=%s)", rpc_request.method)
            return _unauthorized(bridge, rpc_request.id)
        context = bridge.context_for(principal)

    response = await bridge.server.handle(rpc_request, context)
    if response is None:
        return Response(status_code=202)
    return JSONResponse(response)
