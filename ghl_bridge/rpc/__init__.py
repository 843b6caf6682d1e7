"""MCP JSON-RPC layer: request framing, dispatch and the tool catalogue."""

from .server import (
    BridgeServer,
    JSONRPCRequest,
    RequestContext,
    RPCError,
    error_response,
    parse_request,
)
from .tools import ToolRegistry, default_registry

__all__ = [
    "BridgeServer",
    "JSONRPCRequest",
    "RequestContext",
    "RPCError",
    "ToolRegistry",
    "default_registry",
    "error_response",
    "parse_request",
]
