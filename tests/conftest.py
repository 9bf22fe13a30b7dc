"""Pytest configuration shared across the suite."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest
from fakes import PROVIDER, FakeIdentityProvider

from identity_bridge.clients.discovery import DiscoveryClient
from identity_bridge.core.config import (
    IdentityProviderSettings,
    SignatureSettings,
    UserMappingSettings,
)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def provider_settings() -> IdentityProviderSettings:
    return IdentityProviderSettings(
        client_identifier="customClientIdentifier",
        client_secret="customClientSecret",
        redirect_uri="http://client.example.com/oauth_login",
        provider_base_uri=PROVIDER,
        root_uri="http://client.example.com",
    )


@pytest.fixture
def signature_settings() -> SignatureSettings:
    return SignatureSettings(
        request_tolerance=5,
        webhook_tolerance=10,
        webhook_secret_key="webhook-secret",
        request_signing_key="request-secret",
    )


@pytest.fixture
def mapping_settings() -> UserMappingSettings:
    return UserMappingSettings(
        oauth_token_attribute_name="oauth_token",
        oauth_refresh_token_attribute_name="oauth_refresh_token",
        external_id_attribute_name="external_id",
        user_info_attribute_mapping={
            "external_id": "sub",
            "email": "email",
            "first_name": "first_name",
            "last_name": "last_name",
        }
    )


@pytest.fixture
def discovery(provider_settings, provider) -> DiscoveryClient:
    return DiscoveryClient(provider_settings, transport=provider.transport)
