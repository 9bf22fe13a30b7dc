"""
Application configuration models and helpers.

Settings are read once at process start and are immutable afterwards; every
component receives the settings object through its constructor instead of
reading ambient state.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class IdentityProviderSettings(BaseSettings):
    """Client credentials and endpoints of the remote identity provider."""

    model_config = SettingsConfigDict(env_prefix="IP_", frozen=True, extra="ignore")

    client_identifier: str = Field(..., min_length=1)
    client_secret: str = Field(..., min_length=1)
    redirect_uri: AnyHttpUrl
    provider_base_uri: AnyHttpUrl
    root_uri: Optional[AnyHttpUrl] = Field(
        None,
        description="Client application root used as the post sign-out redirect.",
    )
    api_sign_out_path: str = "/api/sign_out"
    discovery_cache_ttl_seconds: int = Field(86400, ge=0)
    http_timeout_seconds: float = Field(10.0, gt=0)

    @property
    def base_uri(self) -> str:
        """Provider base URI without a trailing slash."""
        return str(self.provider_base_uri).rstrip("/")


class SignatureSettings(BaseSettings):
    """Keys and tolerance windows for signed requests and webhooks."""

    model_config = SettingsConfigDict(env_prefix="IP_", frozen=True, extra="ignore")

    request_tolerance: int = Field(5, ge=0, description="Minutes.")
    webhook_tolerance: int = Field(5, ge=0, description="Minutes.")
    webhook_secret_key: Optional[str] = None
    request_signing_key: Optional[str] = Field(
        None,
        description="Shared secret for signed API requests; defaults to the client secret.",
    )


class UserMappingSettings(BaseSettings):
    """Names of the local user attributes fed from the identity provider."""

    model_config = SettingsConfigDict(env_prefix="IP_", frozen=True, extra="ignore")

    oauth_token_attribute_name: str = "oauth_token"
    oauth_refresh_token_attribute_name: str = "oauth_refresh_token"
    external_id_attribute_name: str = "external_id"
    user_info_attribute_mapping: dict[str, str] = Field(
        default_factory=lambda: {
            "external_id": "sub",
            "email": "email",
            "first_name": "first_name",
            "last_name": "last_name",
        },
        description="Local attribute name -> provider claim name.",
    )


class AppSettings(BaseSettings):
    """Root settings object for the identity bridge."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    user_store_db_path: str = Field(
        "var/identity_bridge.db", validation_alias="USER_STORE_DB_PATH"
    )
    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description="Secret used to derive the key encrypting stored tokens.",
    )
    token_encryption_retired_secrets: list[str] = Field(
        default_factory=list,
        validation_alias="TOKEN_ENCRYPTION_RETIRED_SECRETS",
        description="Previous encryption secrets still accepted for decryption.",
    )
    identity_provider: IdentityProviderSettings = Field(
        default_factory=IdentityProviderSettings
    )
    signatures: SignatureSettings = Field(default_factory=SignatureSettings)
    user_mapping: UserMappingSettings = Field(default_factory=UserMappingSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "IdentityProviderSettings",
    "SignatureSettings",
    "UserMappingSettings",
    "get_settings",
]
