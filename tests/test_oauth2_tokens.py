# Tests for the HS256 bearer token issuer.
# Created: 2026-10-18

import time

import jwt
import pytest

from remote_mcp.oauth2.tokens import InvalidAccessToken, TokenIssuer

SECRET = "test-signing-secret-0123456789abcdef"


@pytest.fixture
def issuer():
    return TokenIssuer(SECRET)


class TestTokenIssuer:
    def test_sign_and_verify(self, issuer):
        token = issuer.sign({"client_id": "c1", "scope": "read"}, 3600)
        claims = issuer.verify(token)
        assert claims["client_id"] == "c1"
        assert claims["scope"] == "read"
        assert claims["exp"] - claims["iat"] == 3600

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenIssuer("")

    def test_wrong_secret_rejected(self, issuer):
        other = TokenIssuer("other-signing-secret-0123456789abcdef")
        token = other.sign({"client_id": "c1"}, 3600)
        with pytest.raises(InvalidAccessToken):
            issuer.verify(token)

    def test_expired_rejected(self, issuer):
        token = issuer.sign({"client_id": "c1"}, -10)
        with pytest.raises(InvalidAccessToken, match="expired"):
            issuer.verify(token)

    def test_garbage_rejected(self, issuer):
        with pytest.raises(InvalidAccessToken):
            issuer.verify("not-a-jwt")

    def test_tampered_rejected(self, issuer):
        token = issuer.sign({"client_id": "c1"}, 3600)
        header, payload, signature = token.split(".")
        flipped = signature[:-2] + ("AA" if signature[-2:] != "AA" else "BB")
        with pytest.raises(InvalidAccessToken):
            issuer.verify(f"{header}.{payload}.{flipped}")

    def test_missing_exp_rejected(self, issuer):
        token = jwt.encode({"client_id": "c1", "iat": int(time.time())}, SECRET)
        with pytest.raises(InvalidAccessToken):
            issuer.verify(token)

    def test_none_algorithm_rejected(self, issuer):
        token = jwt.encode(
            {"client_id": "c1", "exp": int(time.time()) + 60}, None, algorithm="none"
        )
        with pytest.raises(InvalidAccessToken):
            issuer.verify(token)
