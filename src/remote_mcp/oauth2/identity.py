# Identity provider collaborators.
# Created: 2026-10-18
#
# The engine never authenticates humans itself. It asks an IdentityProvider
# who is signed in (from the request headers) and, for userinfo, what it
# knows about a user id.

from __future__ import annotations

from collections.abc import Mapping
from typing import Protocol

from remote_mcp.oauth2.models import Principal


class IdentityProvider(Protocol):
    """Protocol for identity provider integrations."""

    def current_user(self, headers: Mapping[str, str]) -> Principal | None:
        """Return the signed-in principal, or None if nobody is signed in."""
        ...

    def lookup(self, user_id: str) -> Principal | None:
        """Return what the provider knows about *user_id*."""
        ...


class TrustedHeaderIdentityProvider:
    """Reads the principal from headers set by an authenticating proxy.

    Only safe behind a proxy that strips these headers from client requests.
    """

    def __init__(
        self,
        user_header: str = "X-Authenticated-User",
        username_header: str = "X-Authenticated-Username",
        email_header: str = "X-Authenticated-Email",
    ):
        self.user_header = user_header.lower()
        self.username_header = username_header.lower()
        self.email_header = email_header.lower()

    def current_user(self, headers: Mapping[str, str]) -> Principal | None:
        lowered = {k.lower(): v for k, v in headers.items()}
        user_id = lowered.get(self.user_header, "").strip()
        if not user_id:
            return None
        return Principal(
            user_id=user_id,
            username=lowered.get(self.username_header) or None,
            email=lowered.get(self.email_header) or None,
        )

    def lookup(self, user_id: str) -> Principal | None:
        # The proxy only vouches for the current request.
        return Principal(user_id=user_id)


class AnonymousIdentityProvider:
    """Nobody is ever signed in; every authorization request goes to the login page."""

    def current_user(self, headers: Mapping[str, str]) -> Principal | None:
        return None

    def lookup(self, user_id: str) -> Principal | None:
        return None


class StaticIdentityProvider:
    """Fixed user directory with an optional always-signed-in user.

    Useful for local development and tests.
    """

    def __init__(self, users: list[Principal] | None = None, signed_in: str | None = None):
        self.users = {u.user_id: u for u in users or []}
        self.signed_in = signed_in

    def current_user(self, headers: Mapping[str, str]) -> Principal | None:
        if self.signed_in is None:
            return None
        return self.users.get(self.signed_in, Principal(user_id=self.signed_in))

    def lookup(self, user_id: str) -> Principal | None:
        return self.users.get(user_id)
