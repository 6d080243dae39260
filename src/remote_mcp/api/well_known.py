# Authorization server metadata (RFC 8414).
# Created: 2026-10-18

from __future__ import annotations

from fastapi import APIRouter, Depends

from remote_mcp.api.deps import get_app_settings
from remote_mcp.config import Settings
from remote_mcp.oauth2.server import GRANT_TYPES

router = APIRouter(tags=["Metadata"])


@router.get("/.well-known/oauth-authorization-server")
async def authorization_server_metadata(settings: Settings = Depends(get_app_settings)):
    """Advertise endpoints and capabilities to MCP clients."""
    base = settings.issuer.rstrip("/")
    return {
        "issuer": base,
        "authorization_endpoint": f"{base}/oauth/authorize",
        "token_endpoint": f"{base}/oauth/token",
        "userinfo_endpoint": f"{base}/oauth/userinfo",
        "registration_endpoint": f"{base}/dcr",
        "response_types_supported": ["code"],
        "grant_types_supported": list(GRANT_TYPES),
        "code_challenge_methods_supported": ["S256"],
        # client_secret_post covers the authorization_code and refresh_token grants;
        # client_credentials accepts HTTP Basic only.
        "token_endpoint_auth_methods_supported": ["client_secret_basic", "client_secret_post"],
    }
