# Shared FastAPI dependencies for the API layer.
# Created: 2026-10-18

from __future__ import annotations

import hmac

from fastapi import HTTPException, Request

from remote_mcp.config import Settings
from remote_mcp.oauth2.server import OAuthEngine, bearer_token


def get_engine(request: Request) -> OAuthEngine:
    """The engine wired by create_api_app(), stored on app.state."""
    return request.app.state.engine


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def require_admin(request: Request) -> None:
    """Guard client management endpoints when ``admin_token`` is configured.

    With no admin token set the endpoints are open, matching a deployment
    where the gateway in front already restricts them.
    """
    settings = get_app_settings(request)
    if settings.admin_token is None:
        return

    expected = settings.admin_token.get_secret_value()
    presented = bearer_token(request.headers.get("Authorization")) or ""
    if not hmac.compare_digest(presented.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
