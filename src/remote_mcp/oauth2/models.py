# OAuth2 data models.
# Created: 2026-10-18
#
# Records are plain dataclasses; storage adapters persist them as dicts via
# to_dict()/from_dict() so any key-value backend can hold them.

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field, fields
from datetime import UTC, datetime
from typing import Any


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _from_known_fields(cls, data: dict[str, Any]):
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in names})


@dataclass
class OAuthClient:
    """Client registered through dynamic client registration."""

    client_id: str
    client_secret_hash: str
    client_name: str | None = None
    client_uri: str | None = None
    redirect_uris: list[str] = field(default_factory=list)
    grant_types: list[str] = field(default_factory=lambda: ["client_credentials"])
    response_types: list[str] = field(default_factory=list)
    token_endpoint_auth_method: str = "client_secret_basic"
    scope: str = ""
    client_id_issued_at: int = field(default_factory=lambda: int(time.time()))
    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OAuthClient:
        return _from_known_fields(cls, data)

    def public_dict(self) -> dict[str, Any]:
        """Client metadata safe to return to callers (no secret material)."""
        data = self.to_dict()
        data.pop("client_secret_hash", None)
        return data


@dataclass
class AuthorizationCode:
    """Single-use authorization code bound to a PKCE challenge."""

    code: str
    client_id: str
    redirect_uri: str
    user_id: str
    code_challenge: str
    code_challenge_method: str  # "S256"
    state: str
    scope: str
    expires_at: int
    created_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AuthorizationCode:
        return _from_known_fields(cls, data)

    def is_expired(self, now: int | None = None) -> bool:
        return self.expires_at < (int(time.time()) if now is None else now)


@dataclass
class RefreshToken:
    """Rotating refresh token. Replaced on every use."""

    token: str
    client_id: str
    scope: str
    expires_at: int
    user_id: str | None = None
    created_at: str = field(default_factory=_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RefreshToken:
        return _from_known_fields(cls, data)

    def is_expired(self, now: int | None = None) -> bool:
        return self.expires_at < (int(time.time()) if now is None else now)


@dataclass
class Principal:
    """Human principal as known to the identity provider."""

    user_id: str
    username: str | None = None
    email: str | None = None
