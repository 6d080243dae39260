# MCP router: JSON-RPC resource endpoint behind bearer tokens.
# Created: 2026-10-18
#
# Stand-in for the real MCP method dispatch. It only consumes the verified
# principal (client id, optional user id) and the token's scope.

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from remote_mcp import __version__
from remote_mcp.api.deps import get_engine
from remote_mcp.oauth2.errors import InvalidToken
from remote_mcp.oauth2.server import OAuthEngine, bearer_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["MCP"])

PROTOCOL_VERSION = "2024-11-05"

# JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602

ECHO_TOOL = {
    "name": "echo",
    "description": "Echo back the input",
    "inputSchema": {
        "type": "object",
        "properties": {"message": {"type": "string", "description": "Message to echo"}},
        "required": ["message"],
    },
}

WHOAMI_TOOL = {
    "name": "whoami",
    "description": "Describe the authenticated caller",
    "inputSchema": {"type": "object", "properties": {}},
}

EXAMPLE_RESOURCE = {
    "uri": "file:///example.txt",
    "name": "Example File",
    "description": "An example file resource",
    "mimeType": "text/plain",
}


@dataclass
class McpPrincipal:
    """Who is calling, as established by the access token."""

    client_id: str
    scope: str
    user_id: str | None = None


def _result(request_id: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def dispatch(message: Any, principal: McpPrincipal) -> dict[str, Any]:
    """Handle one JSON-RPC request object."""
    if not isinstance(message, dict) or message.get("jsonrpc") != "2.0":
        request_id = message.get("id") if isinstance(message, dict) else None
        return _error(request_id, INVALID_REQUEST, "Invalid Request")

    request_id = message.get("id")
    method = message.get("method")
    params = message.get("params") or {}
    if not isinstance(params, dict):
        return _error(request_id, INVALID_PARAMS, "Invalid params")

    if method == "initialize":
        return _result(
            request_id,
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}, "resources": {}},
                "serverInfo": {"name": "Remote MCP Server", "version": __version__},
            },
        )

    if method == "tools/list":
        return _result(request_id, {"tools": [ECHO_TOOL, WHOAMI_TOOL]})

    if method == "tools/call":
        if params.get("name") == "whoami":
            text = json.dumps(
                {
                    "client_id": principal.client_id,
                    "user_id": principal.user_id,
                    "scope": principal.scope,
                }
            )
            return _result(request_id, {"content": [{"type": "text", "text": text}]})
        if params.get("name") != "echo":
            return _error(request_id, INVALID_PARAMS, f"Unknown tool: {params.get('name')}")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            return _error(request_id, INVALID_PARAMS, "Invalid params")
        text = f"Echo: {arguments.get('message', '')}"
        return _result(request_id, {"content": [{"type": "text", "text": text}]})

    if method == "resources/list":
        return _result(request_id, {"resources": [EXAMPLE_RESOURCE]})

    if method == "resources/read":
        if params.get("uri") != EXAMPLE_RESOURCE["uri"]:
            return _error(request_id, INVALID_PARAMS, f"Unknown resource: {params.get('uri')}")
        return _result(
            request_id,
            {
                "contents": [
                    {
                        "uri": EXAMPLE_RESOURCE["uri"],
                        "mimeType": "text/plain",
                        "text": "This is an example file content.",
                    }
                ]
            },
        )

    return _error(request_id, METHOD_NOT_FOUND, "Method not found")


@router.post("/mcp")
async def handle_mcp(request: Request, engine: OAuthEngine = Depends(get_engine)):
    """JSON-RPC 2.0 endpoint. Requires an access token from this server."""
    token = bearer_token(request.headers.get("Authorization"))
    if token is None:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    try:
        claims, client = await asyncio.to_thread(engine.resolve_access_token, token)
    except InvalidToken as exc:
        return JSONResponse(status_code=401, content={"error": exc.description})

    principal = McpPrincipal(
        client_id=client.client_id,
        scope=claims.get("scope", ""),
        user_id=claims.get("user_id"),
    )

    try:
        message = json.loads(await request.body() or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(None, PARSE_ERROR, "Parse error")

    logger.debug("MCP request from client %s", principal.client_id)
    return dispatch(message, principal)
