# Tests for settings and startup configuration.
# Created: 2026-10-18

import logging

import pytest

from remote_mcp.api.serve import create_api_app
from remote_mcp.config import ConfigError, Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "REMOTE_MCP_JWT_SECRET",
        "REMOTE_MCP_ENVIRONMENT",
        "REMOTE_MCP_ADMIN_TOKEN",
        "REMOTE_MCP_TRUST_PROXY_AUTH",
    ):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.environment == "development"
        assert s.client_table == "mcp-clients"
        assert s.auth_code_table == "mcp-auth-codes"
        assert s.refresh_token_table == "mcp-refresh-tokens"
        assert s.storage_backend == "memory"
        assert s.login_url == "/auth/login"
        assert s.admin_token is None

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("REMOTE_MCP_JWT_SECRET", "from-env")
        monkeypatch.setenv("REMOTE_MCP_CLIENT_TABLE", "prod-clients")
        s = Settings.load()
        assert s.signing_secret() == "from-env"
        assert s.client_table == "prod-clients"

    def test_secret_not_in_repr(self):
        s = Settings(jwt_secret="super-secret-value")
        assert "super-secret-value" not in repr(s)


class TestSigningSecret:
    def test_production_without_secret_fails(self):
        with pytest.raises(ConfigError):
            Settings(environment="production").signing_secret()

    def test_production_app_refuses_to_start(self):
        with pytest.raises(ConfigError):
            create_api_app(settings=Settings(environment="production"))

    def test_development_uses_ephemeral_secret(self, caplog):
        s = Settings()
        with caplog.at_level(logging.WARNING, logger="remote_mcp.config"):
            first = s.signing_secret()
        assert len(first) == 64
        assert first != s.signing_secret()
        assert "ephemeral" in caplog.text

    def test_empty_secret_treated_as_missing(self):
        with pytest.raises(ConfigError):
            Settings(environment="production", jwt_secret="").signing_secret()


class TestIdentityWiring:
    def test_proxy_headers_off_by_default(self):
        from remote_mcp.oauth2.identity import AnonymousIdentityProvider
        from remote_mcp.oauth2.server import OAuthEngine

        s = Settings(jwt_secret="x" * 32)
        assert s.trust_proxy_auth is False
        engine = OAuthEngine.from_settings(s)
        assert isinstance(engine.identity, AnonymousIdentityProvider)
        assert engine.identity.current_user({"X-Authenticated-User": "mallory"}) is None

    def test_proxy_headers_opt_in(self, monkeypatch):
        from remote_mcp.oauth2.identity import TrustedHeaderIdentityProvider
        from remote_mcp.oauth2.server import OAuthEngine

        monkeypatch.setenv("REMOTE_MCP_TRUST_PROXY_AUTH", "true")
        engine = OAuthEngine.from_settings(Settings(jwt_secret="x" * 32))
        assert isinstance(engine.identity, TrustedHeaderIdentityProvider)
