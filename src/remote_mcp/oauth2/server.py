# OAuth 2.1 authorization server engine.
# Created: 2026-10-18
#
# Implements dynamic client registration (RFC 7591), the authorization code
# flow with PKCE (RFC 7636), client credentials, and refresh token rotation.
# The engine is transport-neutral: it takes plain mappings, returns dicts or
# redirect URLs, and raises OAuthError subclasses for protocol failures.

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qsl, unquote, urlencode, urlsplit, urlunsplit

from remote_mcp.oauth2.clients import ClientRegistry
from remote_mcp.oauth2.errors import (
    InvalidClient,
    InvalidGrant,
    InvalidRequest,
    InvalidScope,
    InvalidToken,
    UnauthorizedClient,
    UnsupportedGrantType,
    UnsupportedResponseType,
)
from remote_mcp.oauth2.grants import AuthorizationCodeStore, RefreshTokenStore
from remote_mcp.oauth2.identity import (
    AnonymousIdentityProvider,
    IdentityProvider,
    TrustedHeaderIdentityProvider,
)
from remote_mcp.oauth2.models import OAuthClient
from remote_mcp.oauth2.storage import KeyValueStoreProtocol, create_store
from remote_mcp.oauth2.tokens import InvalidAccessToken, TokenIssuer

if TYPE_CHECKING:
    from remote_mcp.config import Settings

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TTL = 3600

AUTHORIZE_PARAMS = (
    "response_type",
    "client_id",
    "redirect_uri",
    "state",
    "code_challenge",
    "code_challenge_method",
)

GRANT_TYPES = ("authorization_code", "client_credentials", "refresh_token")


def s256_challenge(code_verifier: str) -> str:
    """PKCE S256: BASE64URL(SHA256(code_verifier)) without padding."""
    digest = hashlib.sha256(code_verifier.encode()).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode()


def parse_basic_auth(authorization: str | None) -> tuple[str, str] | None:
    """Decode ``Basic base64(client_id:client_secret)``. None if absent or malformed."""
    if not authorization or not authorization.startswith("Basic "):
        return None
    try:
        decoded = base64.b64decode(authorization[6:].strip(), validate=True).decode()
    except (binascii.Error, UnicodeDecodeError):
        return None
    client_id, sep, client_secret = decoded.partition(":")
    if not sep or not client_id or not client_secret:
        return None
    return unquote(client_id), unquote(client_secret)


def bearer_token(authorization: str | None) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization[7:].strip() or None


def _with_query(url: str, params: dict[str, str]) -> str:
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True) + list(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


class OAuthEngine:
    """OAuth 2.1 authorization server with PKCE and dynamic registration."""

    def __init__(
        self,
        clients: ClientRegistry,
        codes: AuthorizationCodeStore,
        refresh_tokens: RefreshTokenStore,
        issuer: TokenIssuer,
        identity: IdentityProvider,
        login_url: str = "/auth/login",
    ):
        self.clients = clients
        self.codes = codes
        self.refresh_tokens = refresh_tokens
        self.issuer = issuer
        self.identity = identity
        self.login_url = login_url

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: KeyValueStoreProtocol | None = None,
        identity: IdentityProvider | None = None,
    ) -> OAuthEngine:
        """Wire an engine from settings. Raises ConfigError on a missing secret in production."""
        store = store or create_store(settings)
        if identity is None and settings.trust_proxy_auth:
            identity = TrustedHeaderIdentityProvider(
                user_header=settings.identity_user_header,
                username_header=settings.identity_username_header,
                email_header=settings.identity_email_header,
            )
        elif identity is None:
            identity = AnonymousIdentityProvider()
        return cls(
            clients=ClientRegistry(store, settings.client_table),
            codes=AuthorizationCodeStore(store, settings.auth_code_table),
            refresh_tokens=RefreshTokenStore(store, settings.refresh_token_table),
            issuer=TokenIssuer(settings.signing_secret()),
            identity=identity,
            login_url=settings.login_url,
        )

    # ------------------------------------------------------------------
    # Client management
    # ------------------------------------------------------------------

    def register_client(self, metadata: dict[str, Any]) -> dict[str, Any]:
        """Register a client and return the RFC 7591 registration response."""
        client, secret = self.clients.register(metadata)
        return {
            "client_id": client.client_id,
            "client_secret": secret,
            "client_id_issued_at": client.client_id_issued_at,
            "client_secret_expires_at": 0,
            "client_name": client.client_name,
            "client_uri": client.client_uri,
            "redirect_uris": client.redirect_uris,
            "grant_types": client.grant_types,
            "response_types": client.response_types,
            "token_endpoint_auth_method": client.token_endpoint_auth_method,
            "scope": client.scope,
        }

    def get_client(self, client_id: str) -> dict[str, Any] | None:
        client = self.clients.get(client_id)
        return client.public_dict() if client is not None else None

    def delete_client(self, client_id: str) -> None:
        self.clients.delete(client_id)

    # ------------------------------------------------------------------
    # Authorization endpoint
    # ------------------------------------------------------------------

    def authorize(self, params: Mapping[str, str], headers: Mapping[str, str]) -> str:
        """Validate an authorization request and return the redirect location.

        The location is either the client's redirect_uri carrying ``code`` and
        ``state``, or the identity provider's login page when nobody is
        signed in. Invalid requests raise and never redirect.
        """
        for name in AUTHORIZE_PARAMS:
            if not params.get(name):
                raise InvalidRequest(f"Missing required parameter: {name}")

        if params["code_challenge_method"] != "S256":
            raise InvalidRequest("code_challenge_method must be S256")

        if params["response_type"] != "code":
            raise UnsupportedResponseType("response_type must be code")

        client = self.clients.get(params["client_id"])
        if client is None:
            raise UnauthorizedClient("Invalid client_id")

        redirect_uri = params["redirect_uri"]
        if redirect_uri not in client.redirect_uris:
            logger.warning("Rejected redirect_uri for client %s", client.client_id)
            raise InvalidRequest("Invalid redirect_uri")

        scope = params.get("scope") or ""
        if client.scope and not set(scope.split()) <= set(client.scope.split()):
            raise InvalidScope("Requested scope exceeds the client's registered scope")

        principal = self.identity.current_user(headers)
        if principal is None:
            forwarded = {name: params[name] for name in AUTHORIZE_PARAMS}
            if scope:
                forwarded["scope"] = scope
            return _with_query(self.login_url, forwarded)

        auth_code = self.codes.create(
            client_id=client.client_id,
            redirect_uri=redirect_uri,
            user_id=principal.user_id,
            code_challenge=params["code_challenge"],
            code_challenge_method=params["code_challenge_method"],
            state=params["state"],
            scope=scope,
        )
        logger.debug("Issued authorization code for client %s", client.client_id)
        return _with_query(redirect_uri, {"code": auth_code.code, "state": params["state"]})

    # ------------------------------------------------------------------
    # Token endpoint
    # ------------------------------------------------------------------

    def token(self, form: Mapping[str, str], authorization: str | None = None) -> dict[str, Any]:
        """Dispatch a token request on ``grant_type``."""
        grant_type = form.get("grant_type")
        if grant_type == "authorization_code":
            return self._authorization_code_grant(form, authorization)
        if grant_type == "client_credentials":
            return self._client_credentials_grant(authorization)
        if grant_type == "refresh_token":
            return self._refresh_token_grant(form, authorization)
        raise UnsupportedGrantType("Unsupported grant type")

    def _form_credentials(
        self, form: Mapping[str, str], authorization: str | None
    ) -> tuple[str | None, str | None]:
        client_id = form.get("client_id")
        client_secret = form.get("client_secret")
        basic = parse_basic_auth(authorization)
        if basic is not None:
            client_id = client_id or basic[0]
            client_secret = client_secret or basic[1]
        return client_id, client_secret

    def _authenticate(self, client_id: str, client_secret: str) -> OAuthClient:
        client = self.clients.authenticate(client_id, client_secret)
        if client is None:
            logger.warning("Client authentication failed for %s", client_id)
            raise InvalidClient("Invalid client credentials")
        return client

    def _authorization_code_grant(
        self, form: Mapping[str, str], authorization: str | None
    ) -> dict[str, Any]:
        client_id, client_secret = self._form_credentials(form, authorization)
        code = form.get("code")
        redirect_uri = form.get("redirect_uri")
        code_verifier = form.get("code_verifier")
        if not (code and redirect_uri and code_verifier and client_id and client_secret):
            raise InvalidRequest("Missing required parameters")

        auth_code = self.codes.get(code)
        if auth_code is None:
            raise InvalidGrant("Invalid authorization code")

        client = self._authenticate(client_id, client_secret)

        if auth_code.client_id != client.client_id:
            raise InvalidGrant("Authorization code was issued to another client")

        if auth_code.redirect_uri != redirect_uri:
            raise InvalidGrant("redirect_uri does not match the authorization request")

        if not hmac.compare_digest(s256_challenge(code_verifier), auth_code.code_challenge):
            raise InvalidGrant("Invalid code_verifier")

        if auth_code.is_expired():
            self.codes.delete(code)
            raise InvalidGrant("Authorization code expired")

        # One-time use: only the request that removes the code may proceed.
        if self.codes.consume(code) is None:
            raise InvalidGrant("Invalid authorization code")

        access_token = self._access_token(client.client_id, auth_code.scope, auth_code.user_id)
        refresh = self.refresh_tokens.issue(
            client_id=client.client_id, scope=auth_code.scope, user_id=auth_code.user_id
        )
        logger.info("Exchanged authorization code for client %s", client.client_id)
        return {
            "access_token": access_token,
            "token_type": "Bearer",
            "expires_in": ACCESS_TOKEN_TTL,
            "refresh_token": refresh.token,
            "scope": auth_code.scope,
        }

    def _client_credentials_grant(self, authorization: str | None) -> dict[str, Any]:
        basic_challenge = {"WWW-Authenticate": 'Basic realm="token"'}
        if not authorization or not authorization.startswith("Basic "):
            raise InvalidClient("Missing or invalid authorization header", headers=basic_challenge)
        credentials = parse_basic_auth(authorization)
        if credentials is None:
            raise InvalidClient("Invalid credentials format", headers=basic_challenge)

        client = self.clients.authenticate(*credentials)
        if client is None:
            logger.warning("Client authentication failed for %s", credentials[0])
            raise InvalidClient("Invalid credentials", headers=basic_challenge)

        logger.info("Issued client credentials token for %s", client.client_id)
        return {
            "access_token": self._access_token(client.client_id, client.scope),
            "token_type": "Bearer",
            "expires_in": ACCESS_TOKEN_TTL,
            "scope": client.scope,
        }

    def _refresh_token_grant(
        self, form: Mapping[str, str], authorization: str | None
    ) -> dict[str, Any]:
        client_id, client_secret = self._form_credentials(form, authorization)
        presented = form.get("refresh_token")
        if not (presented and client_id and client_secret):
            raise InvalidRequest("Missing required parameters")

        old = self.refresh_tokens.get(presented)
        if old is None:
            raise InvalidGrant("Invalid refresh token")

        client = self._authenticate(client_id, client_secret)
        if client.client_id != old.client_id:
            logger.warning("Refresh token presented by foreign client %s", client.client_id)
            raise InvalidClient("Invalid client credentials")

        if old.is_expired():
            self.refresh_tokens.delete(presented)
            raise InvalidGrant("Refresh token expired")

        if self.refresh_tokens.consume(presented) is None:
            raise InvalidGrant("Invalid refresh token")

        access_token = self._access_token(old.client_id, old.scope, old.user_id)
        new = self.refresh_tokens.issue(
            client_id=old.client_id, scope=old.scope, user_id=old.user_id
        )
        logger.info("Rotated refresh token for client %s", old.client_id)
        return {
            "access_token": access_token,
            "token_type": "Bearer",
            "expires_in": ACCESS_TOKEN_TTL,
            "refresh_token": new.token,
            "scope": old.scope,
        }

    def _access_token(self, client_id: str, scope: str, user_id: str | None = None) -> str:
        claims: dict[str, Any] = {
            "sub": user_id or client_id,
            "client_id": client_id,
            "scope": scope,
        }
        if user_id:
            claims["user_id"] = user_id
        return self.issuer.sign(claims, ACCESS_TOKEN_TTL)

    # ------------------------------------------------------------------
    # Bearer tokens
    # ------------------------------------------------------------------

    def resolve_access_token(self, token: str) -> tuple[dict[str, Any], OAuthClient]:
        """Verify an access token and load its client.

        Raises InvalidToken with description "Invalid token" or
        "Client not found".
        """
        try:
            claims = self.issuer.verify(token)
        except InvalidAccessToken as exc:
            raise InvalidToken("Invalid token") from exc
        client = self.clients.get(claims.get("client_id", ""))
        if client is None:
            raise InvalidToken("Client not found")
        return claims, client

    def userinfo(self, authorization: str | None) -> dict[str, Any]:
        """Return the claims of the principal behind a bearer token."""
        token = bearer_token(authorization)
        if token is None:
            raise InvalidToken("Missing or invalid authorization header")
        claims, client = self.resolve_access_token(token)

        user_id = claims.get("user_id")
        if not user_id:
            return {
                "sub": client.client_id,
                "client_id": client.client_id,
                "client_name": client.client_name,
                "scope": claims.get("scope", ""),
            }

        info: dict[str, Any] = {
            "sub": user_id,
            "client_id": client.client_id,
            "scope": claims.get("scope", ""),
        }
        principal = self.identity.lookup(user_id)
        if principal is not None:
            if principal.username:
                info["username"] = principal.username
            if principal.email:
                info["email"] = principal.email
        return info
