# OAuth2 router: authorize, token, userinfo.
# Created: 2026-10-18
#
# Thin transport adapter: parameters are handed to OAuthEngine as plain
# mappings, and OAuthError raised by the engine is rendered by the
# exception handler registered in serve.py. Engine calls hit storage, so they
# never run on the event loop: plain def routes use the threadpool, async
# ones go through asyncio.to_thread.

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, RedirectResponse

from remote_mcp.api.deps import get_engine
from remote_mcp.api.schemas.oauth2 import OAuthErrorResponse, TokenResponse
from remote_mcp.oauth2.errors import InvalidRequest
from remote_mcp.oauth2.server import OAuthEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OAuth2"])

_NO_STORE = {"Cache-Control": "no-store", "Pragma": "no-cache"}


@router.get(
    "/oauth/authorize",
    status_code=302,
    responses={400: {"model": OAuthErrorResponse}},
)
def authorize(request: Request, engine: OAuthEngine = Depends(get_engine)):
    """Start the authorization code flow (PKCE S256 required)."""
    location = engine.authorize(dict(request.query_params), request.headers)
    return RedirectResponse(location, status_code=302)


async def _token_params(request: Request) -> dict[str, str]:
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise InvalidRequest("Malformed JSON body") from exc
        if not isinstance(body, dict):
            raise InvalidRequest("Request body must be an object")
        return {k: str(v) for k, v in body.items() if v is not None}

    form = await request.form()
    return {k: v for k, v in form.items() if isinstance(v, str)}


@router.post(
    "/oauth/token",
    response_model=TokenResponse,
    response_model_exclude_none=True,
    responses={400: {"model": OAuthErrorResponse}, 401: {"model": OAuthErrorResponse}},
)
@router.post("/token", include_in_schema=False)
async def token(request: Request, engine: OAuthEngine = Depends(get_engine)):
    """Exchange a code, client credentials or refresh token for an access token."""
    params = await _token_params(request)
    result = await asyncio.to_thread(engine.token, params, request.headers.get("Authorization"))
    return JSONResponse(result, headers=_NO_STORE)


@router.get("/oauth/userinfo", responses={401: {"model": OAuthErrorResponse}})
def userinfo(request: Request, engine: OAuthEngine = Depends(get_engine)):
    """Describe the principal behind a bearer token."""
    return engine.userinfo(request.headers.get("Authorization"))
