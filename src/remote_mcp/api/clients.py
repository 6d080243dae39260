# Client management router: read and delete registered clients.
# Created: 2026-10-18

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from remote_mcp.api.deps import get_engine, require_admin
from remote_mcp.api.schemas.oauth2 import ClientInfo, ErrorResponse
from remote_mcp.oauth2.server import OAuthEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Clients"], dependencies=[Depends(require_admin)])


@router.get("/clients/", include_in_schema=False)
@router.delete("/clients/", include_in_schema=False)
async def missing_client_id():
    return JSONResponse(status_code=400, content={"error": "Client ID is required"})


@router.get(
    "/clients/{client_id}",
    response_model=ClientInfo,
    responses={404: {"model": ErrorResponse}},
)
def get_client(client_id: str, engine: OAuthEngine = Depends(get_engine)):
    """Return client metadata. The client secret is never included."""
    client = engine.get_client(client_id)
    if client is None:
        return JSONResponse(status_code=404, content={"error": "Client not found"})
    return client


@router.delete("/clients/{client_id}", status_code=204)
def delete_client(client_id: str, engine: OAuthEngine = Depends(get_engine)):
    """Delete a client. Deleting an unknown client also succeeds."""
    engine.delete_client(client_id)
    return Response(status_code=204)
