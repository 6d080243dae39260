# Bearer token issuer: stateless HS256 JWTs.
# Created: 2026-10-18
#
# Access tokens are never stored. Anyone holding the signing secret can
# verify them, and they stay valid for their full TTL (no revocation list).

from __future__ import annotations

import logging
import time
from typing import Any

import jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

__all__ = ["InvalidAccessToken", "TokenIssuer"]


class InvalidAccessToken(Exception):
    """Token is malformed, has a bad signature, or has expired."""


class TokenIssuer:
    """Signs and verifies bearer tokens with a process-wide symmetric secret."""

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret

    def sign(self, claims: dict[str, Any], ttl: int) -> str:
        """Return a signed token embedding *claims* plus ``iat`` and ``exp``."""
        now = int(time.time())
        payload = {**claims, "iat": now, "exp": now + ttl}
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> dict[str, Any]:
        """Return the token's claims. Raises InvalidAccessToken on any failure."""
        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={"require": ["exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidAccessToken("Token has expired") from exc
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected bearer token: %s", exc)
            raise InvalidAccessToken("Invalid token") from exc
