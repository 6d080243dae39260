# Settings for the authorization server.
# Created: 2026-10-18
#
# All values come from REMOTE_MCP_* environment variables (or a .env file).

from __future__ import annotations

import logging
import secrets
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised at startup when the configuration cannot be used."""


class Settings(BaseSettings):
    """Authorization server settings."""

    model_config = SettingsConfigDict(
        env_prefix="REMOTE_MCP_",
        env_file=".env",
        extra="ignore",
    )

    environment: Literal["development", "production"] = "development"
    jwt_secret: SecretStr | None = None

    # Storage collections
    client_table: str = "mcp-clients"
    auth_code_table: str = "mcp-auth-codes"
    refresh_token_table: str = "mcp-refresh-tokens"
    storage_backend: Literal["memory", "file", "redis"] = "memory"
    storage_path: Path = Field(default_factory=lambda: Path.home() / ".remote-mcp" / "store")
    redis_url: str = "redis://localhost:6379/0"

    # Public base URL, used for the metadata document
    issuer: str = "http://localhost:8888"

    # Identity provider collaborator. Proxy headers are trusted only when
    # trust_proxy_auth is set, i.e. behind a proxy that strips them from clients.
    login_url: str = "/auth/login"
    trust_proxy_auth: bool = False
    identity_user_header: str = "X-Authenticated-User"
    identity_username_header: str = "X-Authenticated-Username"
    identity_email_header: str = "X-Authenticated-Email"

    # Bearer token guarding /clients/*; unset means open
    admin_token: SecretStr | None = None

    cors_allowed_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def load(cls) -> Settings:
        return cls()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def signing_secret(self) -> str:
        """Return the token signing secret.

        A missing secret is fatal in production. In development a random
        per-process secret is generated, so tokens do not survive restarts.
        """
        if self.jwt_secret is not None and self.jwt_secret.get_secret_value():
            return self.jwt_secret.get_secret_value()
        if self.is_production:
            raise ConfigError("REMOTE_MCP_JWT_SECRET must be set in production")
        logger.warning(
            "REMOTE_MCP_JWT_SECRET is not set; using an ephemeral signing secret"
        )
        return secrets.token_hex(32)


@lru_cache
def get_settings() -> Settings:
    return Settings.load()
