# Client registry: dynamic client registration and client authentication.
# Created: 2026-10-18
#
# Secrets are 256-bit random hex strings. Only their sha256 digest is stored;
# the plaintext is returned once at registration (like API keys).

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import uuid
from datetime import UTC, datetime
from typing import Any

from remote_mcp.oauth2.models import OAuthClient
from remote_mcp.oauth2.storage import KeyValueStoreProtocol

logger = logging.getLogger(__name__)

_SECRET_BYTES = 32

DEFAULT_GRANT_TYPES = ["client_credentials"]
DEFAULT_AUTH_METHOD = "client_secret_basic"


def _hash_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode()).hexdigest()


class ClientRegistry:
    """Stores and authenticates registered OAuth clients."""

    def __init__(self, store: KeyValueStoreProtocol, table: str = "mcp-clients"):
        self.store = store
        self.table = table

    def register(self, metadata: dict[str, Any]) -> tuple[OAuthClient, str]:
        """Register a client from DCR metadata. Returns (client, plaintext_secret).

        Missing fields take their defaults; unknown fields are ignored.
        """
        plaintext = secrets.token_hex(_SECRET_BYTES)
        now = datetime.now(UTC)
        client = OAuthClient(
            client_id=str(uuid.uuid4()),
            client_secret_hash=_hash_secret(plaintext),
            client_name=metadata.get("client_name"),
            client_uri=metadata.get("client_uri"),
            redirect_uris=list(metadata.get("redirect_uris") or []),
            grant_types=list(metadata.get("grant_types") or DEFAULT_GRANT_TYPES),
            response_types=list(metadata.get("response_types") or []),
            token_endpoint_auth_method=(
                metadata.get("token_endpoint_auth_method") or DEFAULT_AUTH_METHOD
            ),
            scope=metadata.get("scope") or "",
            client_id_issued_at=int(now.timestamp()),
            created_at=now.isoformat(),
            updated_at=now.isoformat(),
        )
        self.store.put(self.table, client.client_id, client.to_dict())
        logger.info("Registered OAuth client %s (%s)", client.client_id, client.client_name)
        return client, plaintext

    def get(self, client_id: str) -> OAuthClient | None:
        if not client_id:
            return None
        data = self.store.get(self.table, client_id)
        return OAuthClient.from_dict(data) if data is not None else None

    def authenticate(self, client_id: str, client_secret: str) -> OAuthClient | None:
        """Return the client if the secret matches, None otherwise."""
        client = self.get(client_id)
        if client is None or not client_secret:
            return None
        if not hmac.compare_digest(_hash_secret(client_secret), client.client_secret_hash):
            return None
        return client

    def delete(self, client_id: str) -> bool:
        deleted = self.store.delete(self.table, client_id)
        if deleted:
            logger.info("Deleted OAuth client %s", client_id)
        return deleted
