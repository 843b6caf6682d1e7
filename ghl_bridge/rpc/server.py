"""JSON-RPC (MCP) request handling shared by the HTTP and stdio transports."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from .. import __version__
from ..errors import BridgeError, NotAuthenticatedError
from ..ghl.client import GHLClient
from ..ghl.tokens import UpstreamTokenPair, UpstreamTokenStore
from ..security import Principal
from ..sessions import SessionRegistry
from .tools import ToolRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "ghl-mcp-server"
PROTOCOL_VERSION = "2025-03-26"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603
UNAUTHORIZED = -32001


class JSONRPCRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    jsonrpc: Literal["2.0"]
    method: str
    id: Union[int, str, None] = None
    params: dict[str, Any] | None = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set


class RPCError(Exception):
    def __init__(self, code: int, message: str, request_id: Any = None, data: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.request_id = request_id
        self.data = data

    def response(self) -> dict[str, Any]:
        return error_response(self.request_id, self.code, self.message, self.data)


@dataclass(frozen=True)
class RequestContext:
    """Who is calling and which session the call belongs to."""

    principal: Principal
    session_id: str


def error_response(request_id: Any, code: int, message: str, data: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


def parse_request(raw: str | bytes) -> JSONRPCRequest:
    """Decode and validate one JSON-RPC message.

    Raises:
        RPCError: ``PARSE_ERROR`` for malformed JSON, ``INVALID_REQUEST`` for
            anything that is not a JSON-RPC 2.0 request object
    """
    try:
        payload = json.loads(raw)
    except (ValueError, UnicodeDecodeError) as e:
        raise RPCError(PARSE_ERROR, "Parse error") from e
    if not isinstance(payload, dict):
        raise RPCError(INVALID_REQUEST, "Invalid Request")
    try:
        return JSONRPCRequest.model_validate(payload)
    except ValidationError as e:
        request_id = payload.get("id") if isinstance(payload.get("id"), (int, str)) else None
        raise RPCError(INVALID_REQUEST, "Invalid Request", request_id) from e


def _text_result(data: Any, is_error: bool = False) -> dict[str, Any]:
    result: dict[str, Any] = {
        "content": [{"type": "text", "text": json.dumps(data, indent=2, default=str)}],
    }
    if is_error:
        result["isError"] = True
    return result


class BridgeServer:
    """Dispatches MCP methods to the tool catalogue.

    Before a tool runs, upstream tokens bound to the caller's session are
    injected into the token store; afterwards, tokens the store refreshed
    during the call are written back into the session.

    Usage:
        server = BridgeServer(token_store, ghl, tools, sessions)
        response = await server.handle(request, context)
    """

    def __init__(
        self,
        token_store: UpstreamTokenStore,
        ghl: GHLClient,
        tools: ToolRegistry,
        sessions: SessionRegistry,
        *,
        ghl_scopes: list[str] | None = None,
    ):
        self.token_store = token_store
        self.ghl = ghl
        self.tools = tools
        self.sessions = sessions
        self.ghl_scopes = ghl_scopes or []

    def list_tools(self) -> list[dict[str, Any]]:
        return self.tools.definitions()

    async def handle(self, request: JSONRPCRequest, context: RequestContext | None) -> dict[str, Any] | None:
        """Handle one request; returns None for notifications."""
        try:
            result = await self._dispatch(request, context)
        except RPCError as e:
            if request.is_notification:
                return None
            return error_response(request.id, e.code, e.message, e.data)
        except Exception as e:
            logger.exception("Unhandled error in %s", request.method)
            if request.is_notification:
                return None
            return error_response(request.id, INTERNAL_ERROR, str(e) or "Internal error")

        if request.is_notification:
            return None
        return {"jsonrpc": "2.0", "id": request.id, "result": result}

    async def _dispatch(self, request: JSONRPCRequest, context: RequestContext | None) -> Any:
        method = request.method
        params = request.params or {}

        if method == "initialize":
            return {
                "protocolVersion": params.get("protocolVersion") or PROTOCOL_VERSION,
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            }
        if method == "notifications/initialized":
            return None
        if method == "ping":
            return {}

        if context is None:
            raise RPCError(UNAUTHORIZED, "Unauthorized", request.id)

        if method == "tools/list":
            return {"tools": self.list_tools()}
        if method == "tools/call":
            name = params.get("name")
            if not isinstance(name, str):
                raise RPCError(INVALID_PARAMS, "Missing tool name", request.id)
            arguments = params.get("arguments")
            if arguments is not None and not isinstance(arguments, dict):
                raise RPCError(INVALID_PARAMS, "Tool arguments must be an object", request.id)
            return await self.execute(name, arguments, context)

        raise RPCError(METHOD_NOT_FOUND, f"Method not found: {method}", request.id)

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any] | None,
        context: RequestContext,
    ) -> dict[str, Any]:
        """Run one tool on behalf of ``context`` and wrap the outcome as a tool result.

        Raises:
            RPCError: ``INVALID_PARAMS`` for an unknown tool or invalid arguments
        """
        tool = self.tools.get(name)
        if tool is None:
            raise RPCError(INVALID_PARAMS, f"Unknown tool: {name}")
        try:
            args = tool.parse(arguments)
        except ValidationError as e:
            raise RPCError(
                INVALID_PARAMS,
                f"Invalid arguments for {name}",
                data=e.errors(include_url=False, include_context=False),
            ) from e

        session = self.sessions.get(context.session_id)
        injected = session.upstream_tokens if session is not None else None
        if injected is not None:
            injected = self.token_store.successor_of(injected)
            self.token_store.set_tokens(injected)

        if not self.token_store.has_tokens():
            return self._consent_required(context.session_id)

        logger.info("Tool call: %s (client=%s)", name, context.principal.client_id)
        try:
            data = await tool.run(self.ghl, args)
        except NotAuthenticatedError:
            return self._consent_required(context.session_id)
        except BridgeError as e:
            logger.warning("Tool %s failed: %s", name, e.message)
            return _text_result(e.to_dict(), is_error=True)
        finally:
            self._write_back(context.session_id, injected)

        return _text_result(data)

    def _write_back(self, session_id: str, injected: UpstreamTokenPair | None) -> None:
        """Bind the refresh successor of the pair this call injected.

        The store is shared, so its current pair may belong to another session
        by now; only tokens descended from ``injected`` go back to this one.
        """
        if injected is None:
            return
        tokens = self.token_store.successor_of(injected)
        session = self.sessions.get(session_id)
        if session is not None and session.upstream_tokens is not tokens:
            self.sessions.bind(session_id, tokens)

    def _consent_required(self, session_id: str) -> dict[str, Any]:
        auth_url = self.token_store.authorization_url(self.ghl_scopes, state=session_id)
        return _text_result(
            {
                "error": "GHL authentication required. Open authUrl to connect a location.",
                "code": NotAuthenticatedError.error_code,
                "authUrl": auth_url,
            },
            is_error=True,
        )
