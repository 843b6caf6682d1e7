"""Newline-delimited JSON-RPC over stdin/stdout for locally spawned clients."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import TextIO

from .bridge import Bridge
from .rpc.server import RPCError, parse_request
from .security import Principal

logger = logging.getLogger(__name__)

# stdio callers are not authenticated; one shared session serves the pipe
STDIO_PRINCIPAL = Principal(credential="stdio", kind="stdio", client_id="stdio")


async def serve_stdio(bridge: Bridge, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
    """Answer requests line by line until stdin closes."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    loop = asyncio.get_running_loop()
    context = bridge.context_for(STDIO_PRINCIPAL)
    logger.info("GHL MCP server running on stdio")

    while True:
        line = await loop.run_in_executor(None, stdin.readline)
        if not line:
            break
        if not line.strip():
            continue

        try:
            request = parse_request(line)
        except RPCError as e:
            response = e.response()
        else:
            # Keep the session alive while the pipe is in use
            context = bridge.context_for(STDIO_PRINCIPAL)
            response = await bridge.server.handle(request, context)

        if response is not None:
            stdout.write(json.dumps(response) + "\n")
            stdout.flush()
