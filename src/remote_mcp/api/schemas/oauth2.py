# OAuth2 and registration schemas.
# Created: 2026-10-18

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class ClientMetadata(BaseModel):
    """RFC 7591 client metadata. Unknown fields are accepted and ignored."""

    model_config = ConfigDict(extra="ignore")

    client_name: str | None = None
    client_uri: str | None = None
    redirect_uris: list[str] | None = None
    grant_types: list[str] | None = None
    response_types: list[str] | None = None
    token_endpoint_auth_method: str | None = None
    scope: str | None = None


class ClientRegistrationResponse(BaseModel):
    """RFC 7591 registration response. The secret is shown only here."""

    client_id: str
    client_secret: str
    client_id_issued_at: int
    client_secret_expires_at: int = 0
    client_name: str | None = None
    client_uri: str | None = None
    redirect_uris: list[str]
    grant_types: list[str]
    response_types: list[str]
    token_endpoint_auth_method: str
    scope: str


class ClientInfo(BaseModel):
    """Registered client as returned by management reads (no secret)."""

    client_id: str
    client_name: str | None = None
    client_uri: str | None = None
    redirect_uris: list[str]
    grant_types: list[str]
    response_types: list[str]
    token_endpoint_auth_method: str
    scope: str
    client_id_issued_at: int
    created_at: str
    updated_at: str


class TokenResponse(BaseModel):
    """OAuth2 token response."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_token: str | None = None
    scope: str


class OAuthErrorResponse(BaseModel):
    error: str
    error_description: str


class ErrorResponse(BaseModel):
    error: str
