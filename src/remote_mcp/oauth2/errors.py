# OAuth2 protocol errors.
# Created: 2026-10-18
#
# Each error maps to the RFC 6749 two-field body {error, error_description}.

from __future__ import annotations


class OAuthError(Exception):
    """Base class for protocol errors returned to the client."""

    error = "invalid_request"
    status_code = 400

    def __init__(self, description: str = "", headers: dict[str, str] | None = None):
        super().__init__(description or self.error)
        self.description = description
        self.headers = headers or {}

    def to_dict(self) -> dict[str, str]:
        return {"error": self.error, "error_description": self.description}


class InvalidRequest(OAuthError):
    error = "invalid_request"


class InvalidClient(OAuthError):
    error = "invalid_client"
    status_code = 401


class InvalidGrant(OAuthError):
    error = "invalid_grant"


class UnauthorizedClient(OAuthError):
    error = "unauthorized_client"


class UnsupportedGrantType(OAuthError):
    error = "unsupported_grant_type"


class UnsupportedResponseType(OAuthError):
    error = "unsupported_response_type"


class InvalidScope(OAuthError):
    error = "invalid_scope"


class InvalidToken(OAuthError):
    error = "invalid_token"
    status_code = 401


class InvalidClientMetadata(OAuthError):
    error = "invalid_client_metadata"
