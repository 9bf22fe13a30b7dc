"""Tests for the signed webhook user-info lookup."""

from __future__ import annotations

import json

import httpx
import pytest

from identity_bridge.clients.webhook_userinfo import WebhookUserInfoClient
from identity_bridge.core.config import SignatureSettings
from identity_bridge.core.errors import ConfigurationError, WebhookUserInfoRequestError
from identity_bridge.security import RequestSigner, RequestVerifier
from identity_bridge.security.signature import SIGNATURE_HEADER
from identity_bridge.utils.clock import FixedClock

pytestmark = pytest.mark.anyio

NOW = 1700000000


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def client(provider_settings, signature_settings, provider, clock) -> WebhookUserInfoClient:
    return WebhookUserInfoClient(
        provider_settings,
        signature_settings,
        RequestSigner(clock=clock),
        transport=provider.transport,
    )


async def test_fetch_sends_signed_lookup(client, provider, signature_settings, clock) -> None:
    provider.webhook_userinfo = httpx.Response(200, json={"sub": "42", "email": "a@b.com"})

    response = await client.fetch(42, 9)

    assert response.json() == {"sub": "42", "email": "a@b.com"}
    request = provider.requests_to("/api/userinfo")[0]
    assert dict(request.url.params) == {
        "uid": "customClientIdentifier",
        "webhook_id": "9",
        "user_id": "42",
    }
    signed_payload = json.dumps(dict(request.url.params), separators=(",", ":"))
    verifier = RequestVerifier.for_webhooks(signature_settings, clock=clock)
    assert verifier.verify(request.headers[SIGNATURE_HEADER], signed_payload) is True


async def test_fetch_raises_with_provider_error_message(client, provider) -> None:
    provider.webhook_userinfo = httpx.Response(422, json={"error": "Webhook not found"})

    with pytest.raises(WebhookUserInfoRequestError) as exc_info:
        await client.fetch("42", "9")

    assert str(exc_info.value) == "Webhook not found"


async def test_fetch_raises_for_failure_without_error_body(client, provider) -> None:
    provider.webhook_userinfo = httpx.Response(500, text="boom")

    with pytest.raises(WebhookUserInfoRequestError) as exc_info:
        await client.fetch("42", "9")

    assert "500" in str(exc_info.value)


async def test_fetch_requires_webhook_secret(provider_settings, provider, clock) -> None:
    client = WebhookUserInfoClient(
        provider_settings,
        SignatureSettings(webhook_secret_key=None),
        RequestSigner(clock=clock),
        transport=provider.transport,
    )

    with pytest.raises(ConfigurationError):
        await client.fetch("42", "9")
    assert provider.requests == []
