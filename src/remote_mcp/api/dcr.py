# Dynamic client registration router (RFC 7591).
# Created: 2026-10-18

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from remote_mcp.api.deps import get_engine
from remote_mcp.api.schemas.oauth2 import (
    ClientMetadata,
    ClientRegistrationResponse,
    OAuthErrorResponse,
)
from remote_mcp.oauth2.errors import InvalidClientMetadata
from remote_mcp.oauth2.server import OAuthEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Registration"])


@router.post(
    "/dcr",
    status_code=201,
    response_model=ClientRegistrationResponse,
    responses={400: {"model": OAuthErrorResponse}},
)
@router.post("/register", status_code=201, include_in_schema=False)
async def register_client(request: Request, engine: OAuthEngine = Depends(get_engine)):
    """Register a client. The plaintext client_secret is returned only once."""
    raw = await request.body()
    try:
        body = json.loads(raw) if raw.strip() else {}
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidClientMetadata("Request body must be JSON") from exc
    if not isinstance(body, dict):
        raise InvalidClientMetadata("Client metadata must be a JSON object")

    try:
        metadata = ClientMetadata.model_validate(body)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise InvalidClientMetadata(f"Invalid client metadata: {fields}") from exc

    registration = await asyncio.to_thread(
        engine.register_client, metadata.model_dump(exclude_none=True)
    )
    return JSONResponse(
        registration,
        status_code=201,
        headers={"Cache-Control": "no-store", "Pragma": "no-cache"},
    )
