# OAuth 2.1 protocol engine: client registry, grant stores, token issuer.
# Created: 2026-10-18

from remote_mcp.oauth2.errors import OAuthError
from remote_mcp.oauth2.server import OAuthEngine

__all__ = ["OAuthEngine", "OAuthError"]
