# Authorization code and refresh token stores.
# Created: 2026-10-18
#
# Both record types are created and destroyed only by the engine. They are
# consumed through KeyValueStoreProtocol.take(), so a code or refresh token
# can be redeemed at most once even under concurrent requests.

from __future__ import annotations

import logging
import secrets
import time

from remote_mcp.oauth2.models import AuthorizationCode, RefreshToken
from remote_mcp.oauth2.storage import KeyValueStoreProtocol

logger = logging.getLogger(__name__)

# Lifetimes in seconds
CODE_TTL = 600
REFRESH_TOKEN_TTL = 30 * 24 * 3600

_TOKEN_BYTES = 32


class AuthorizationCodeStore:
    """Ephemeral, single-use authorization codes."""

    def __init__(
        self, store: KeyValueStoreProtocol, table: str = "mcp-auth-codes", ttl: int = CODE_TTL
    ):
        self.store = store
        self.table = table
        self.ttl = ttl

    def create(
        self,
        client_id: str,
        redirect_uri: str,
        user_id: str,
        code_challenge: str,
        state: str,
        scope: str = "",
        code_challenge_method: str = "S256",
    ) -> AuthorizationCode:
        auth_code = AuthorizationCode(
            code=secrets.token_hex(_TOKEN_BYTES),
            client_id=client_id,
            redirect_uri=redirect_uri,
            user_id=user_id,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
            state=state,
            scope=scope,
            expires_at=int(time.time()) + self.ttl,
        )
        self.store.put(self.table, auth_code.code, auth_code.to_dict(), auth_code.expires_at)
        return auth_code

    def get(self, code: str) -> AuthorizationCode | None:
        data = self.store.get(self.table, code)
        return AuthorizationCode.from_dict(data) if data is not None else None

    def consume(self, code: str) -> AuthorizationCode | None:
        """Remove and return the code. None if someone else got there first."""
        data = self.store.take(self.table, code)
        return AuthorizationCode.from_dict(data) if data is not None else None

    def delete(self, code: str) -> bool:
        return self.store.delete(self.table, code)


class RefreshTokenStore:
    """Rotating refresh tokens."""

    def __init__(
        self,
        store: KeyValueStoreProtocol,
        table: str = "mcp-refresh-tokens",
        ttl: int = REFRESH_TOKEN_TTL,
    ):
        self.store = store
        self.table = table
        self.ttl = ttl

    def issue(self, client_id: str, scope: str, user_id: str | None = None) -> RefreshToken:
        token = RefreshToken(
            token=secrets.token_hex(_TOKEN_BYTES),
            client_id=client_id,
            user_id=user_id,
            scope=scope,
            expires_at=int(time.time()) + self.ttl,
        )
        self.store.put(self.table, token.token, token.to_dict(), token.expires_at)
        return token

    def get(self, token: str) -> RefreshToken | None:
        data = self.store.get(self.table, token)
        return RefreshToken.from_dict(data) if data is not None else None

    def consume(self, token: str) -> RefreshToken | None:
        data = self.store.take(self.table, token)
        return RefreshToken.from_dict(data) if data is not None else None

    def delete(self, token: str) -> bool:
        return self.store.delete(self.table, token)
