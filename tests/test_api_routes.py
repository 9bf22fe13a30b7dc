"""End-to-end tests for the FastAPI routes against the fake provider."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from identity_bridge import dependencies
from identity_bridge.clients import (
    SessionRevoker,
    SQLiteUserStore,
    TokenExchanger,
    WebhookUserInfoClient,
)
from identity_bridge.core.config import get_settings
from identity_bridge.main import app
from identity_bridge.security import RequestSigner, RequestVerifier
from identity_bridge.security.signature import SIGNATURE_HEADER
from identity_bridge.services import TokenCipherService, UserAttributeTable, UserSyncEngine
from identity_bridge.utils.clock import FixedClock

NOW = 1700000000
PROFILE = {"sub": "42", "email": "ada@example.com", "first_name": "Ada", "last_name": "Lovelace"}


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def store(tmp_path: Path) -> SQLiteUserStore:
    return SQLiteUserStore(
        str(tmp_path / "users.db"), token_cipher=TokenCipherService(secret="api-secret")
    )


@pytest.fixture
def api_overrides(
    provider, provider_settings, signature_settings, mapping_settings, discovery, store, clock
):
    transport = provider.transport
    attributes = UserAttributeTable.from_settings(mapping_settings)
    exchanger = TokenExchanger(provider_settings, discovery, transport=transport)
    signer = RequestSigner(clock=clock)
    engine = UserSyncEngine(
        provider_settings, attributes, discovery, exchanger, store, transport=transport
    )

    overrides = {
        dependencies.get_token_exchanger: lambda: exchanger,
        dependencies.get_session_revoker: lambda: SessionRevoker(
            provider_settings, discovery, transport=transport
        ),
        dependencies.get_user_store: lambda: store,
        dependencies.get_user_attribute_table: lambda: attributes,
        dependencies.get_user_sync_engine: lambda: engine,
        dependencies.get_webhook_userinfo_client: lambda: WebhookUserInfoClient(
            provider_settings, signature_settings, signer, transport=transport
        ),
        dependencies.get_request_verifier: lambda: RequestVerifier.for_requests(
            signature_settings, provider_settings, clock=clock
        ),
        dependencies.get_webhook_verifier: lambda: RequestVerifier.for_webhooks(
            signature_settings, clock=clock
        ),
    }
    app.dependency_overrides.update(overrides)

    yield provider

    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


def _signed(body: dict, key: str, clock: FixedClock) -> tuple[bytes, dict]:
    content = json.dumps(body).encode("utf-8")
    header = RequestSigner(clock=clock).sign(content, key)
    return content, {SIGNATURE_HEADER: header, "Content-Type": "application/json"}


def _store_user(store: SQLiteUserStore, access_token: str = "access", refresh_token: str = "refresh"):
    return store.create_or_update(
        {
            "external_id": "42",
            "email": "old@example.com",
            "oauth_token": access_token,
            "oauth_refresh_token": refresh_token,
        }
    )


@pytest.mark.anyio
async def test_health() -> None:
    async with _client() as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.anyio
async def test_authorize_returns_json_by_default(api_overrides) -> None:
    async with _client() as client:
        response = await client.get("/api/auth/authorize")

    assert response.status_code == 200
    data = response.json()
    assert data["authorization_url"].startswith(
        "https://idp.example.com/oauth/authorize?client_id=customClientIdentifier"
    )
    assert data["authorization_url"].endswith(f"&state={data['state']}")


@pytest.mark.anyio
async def test_authorize_redirects_for_html_accept(api_overrides) -> None:
    async with _client() as client:
        response = await client.get("/api/auth/authorize", headers={"accept": "text/html"})

    assert response.status_code == 307
    assert response.headers["location"].startswith("https://idp.example.com/oauth/authorize")


@pytest.mark.anyio
async def test_callback_signs_in_user_without_exposing_tokens(api_overrides, store) -> None:
    provider = api_overrides
    provider.issue_tokens("accessT0ken", "refreshT0ken")
    provider.profiles["accessT0ken"] = PROFILE

    async with _client() as client:
        response = await client.get("/api/auth/callback", params={"code": "customC0de"})

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "signed_in"
    assert data["user"]["external_id"] == "42"
    assert "oauth_token" not in data["user"]
    assert "oauth_refresh_token" not in data["user"]
    assert store.find_by_external_id("42").oauth_token == "accessT0ken"


@pytest.mark.anyio
async def test_callback_with_rejected_code_is_unauthorized(api_overrides) -> None:
    api_overrides.reject_grant()

    async with _client() as client:
        response = await client.get("/api/auth/callback", params={"code": "invalidCode"})

    assert response.status_code == 401


@pytest.mark.anyio
async def test_logout_revokes_and_clears_tokens(api_overrides, store) -> None:
    provider = api_overrides
    _store_user(store)

    async with _client() as client:
        response = await client.post("/api/auth/logout", json={"external_id": "42"})

    assert response.status_code == 200
    assert response.json() == {
        "revocation_status": 200,
        "logout_url": (
            "https://idp.example.com/logout"
            "?post_sign_out_redirect_url=http%3A%2F%2Fclient.example.com%2F"
        ),
    }
    assert len(provider.requests_to("/oauth/revoke")) == 1
    assert store.find_by_external_id("42").oauth_token is None


@pytest.mark.anyio
async def test_logout_via_api_session(api_overrides, store) -> None:
    _store_user(store)

    async with _client() as client:
        response = await client.post(
            "/api/auth/logout", json={"external_id": "42", "via_api_session": True}
        )

    assert response.json()["revocation_status"] == 204
    assert len(api_overrides.requests_to("/api/sign_out")) == 1


@pytest.mark.anyio
async def test_logout_for_unknown_user_is_not_found(api_overrides) -> None:
    async with _client() as client:
        response = await client.post("/api/auth/logout", json={"external_id": "404"})

    assert response.status_code == 404


@pytest.mark.anyio
async def test_webhook_updates_known_user(api_overrides, store, clock) -> None:
    provider = api_overrides
    _store_user(store)
    provider.webhook_userinfo = httpx.Response(200, json={**PROFILE, "email": "new@example.com"})
    content, headers = _signed({"user_id": 42, "webhook_id": 7}, "webhook-secret", clock)

    async with _client() as client:
        response = await client.post(
            "/api/webhooks/identity-provider", content=content, headers=headers
        )

    assert response.status_code == 200
    assert response.json() == {"status": "processed", "webhook_id": "7"}
    user = store.find_by_external_id("42")
    assert user.email == "new@example.com"
    assert user.oauth_token == "access"


@pytest.mark.anyio
async def test_webhook_for_unknown_user_is_ignored(api_overrides, clock) -> None:
    api_overrides.webhook_userinfo = httpx.Response(200, json={"sub": "999"})
    content, headers = _signed({"user_id": 999, "webhook_id": 8}, "webhook-secret", clock)

    async with _client() as client:
        response = await client.post(
            "/api/webhooks/identity-provider", content=content, headers=headers
        )

    assert response.json()["status"] == "ignored"


@pytest.mark.anyio
@pytest.mark.parametrize(
    "headers",
    [
        {},
        {SIGNATURE_HEADER: "garbage"},
        {SIGNATURE_HEADER: f"t={NOW - 3600},signed_payload={'0' * 64}"},
        {SIGNATURE_HEADER: f"t={NOW},signed_payload={'0' * 64}"},
    ],
)
async def test_webhook_with_bad_signature_is_rejected_for_retry(api_overrides, headers) -> None:
    async with _client() as client:
        response = await client.post(
            "/api/webhooks/identity-provider",
            content=b'{"user_id": 42, "webhook_id": 7}',
            headers=headers,
        )

    assert response.status_code == 400
    assert api_overrides.requests_to("/api/userinfo") == []


@pytest.mark.anyio
async def test_webhook_lookup_failure_is_unprocessable(api_overrides, clock) -> None:
    api_overrides.webhook_userinfo = httpx.Response(422, json={"error": "Webhook not found"})
    content, headers = _signed({"user_id": 42, "webhook_id": 7}, "webhook-secret", clock)

    async with _client() as client:
        response = await client.post(
            "/api/webhooks/identity-provider", content=content, headers=headers
        )

    assert response.status_code == 422
    assert response.json()["detail"] == "Webhook not found"


@pytest.mark.anyio
async def test_signed_sync_request_updates_user(api_overrides, store, clock) -> None:
    api_overrides.profiles["access"] = PROFILE
    _store_user(store)
    content, headers = _signed({"external_id": "42"}, "request-secret", clock)

    async with _client() as client:
        response = await client.post("/api/ip/users/sync", content=content, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "synced"
    assert data["user"]["email"] == "ada@example.com"


@pytest.mark.anyio
async def test_sync_request_with_revoked_refresh_token_is_unauthorized(
    api_overrides, store, clock
) -> None:
    api_overrides.reject_grant()
    _store_user(store, access_token="expired")
    content, headers = _signed({"external_id": "42"}, "request-secret", clock)

    async with _client() as client:
        response = await client.post("/api/ip/users/sync", content=content, headers=headers)

    assert response.status_code == 401
    assert response.json()["error"] == "InvalidAuthorizationGrantError"


@pytest.mark.anyio
async def test_unsigned_sync_request_is_unauthorized(api_overrides, store) -> None:
    _store_user(store)

    async with _client() as client:
        response = await client.post("/api/ip/users/sync", json={"external_id": "42"})

    assert response.status_code == 401
    assert response.json()["error"] == "MissingRequestSignatureError"


@pytest.mark.anyio
async def test_sync_request_for_unknown_user_is_not_found(api_overrides, clock) -> None:
    content, headers = _signed({"external_id": "404"}, "request-secret", clock)

    async with _client() as client:
        response = await client.post("/api/ip/users/sync", content=content, headers=headers)

    assert response.status_code == 404


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("lookup", "expected_status"),
    [
        (httpx.Response(200, json=["42"]), 200),
        (httpx.Response(200, text="<html>ok</html>"), 422),
    ],
)
async def test_webhook_with_unusable_lookup_body(
    api_overrides, store, clock, lookup, expected_status
) -> None:
    _store_user(store)
    api_overrides.webhook_userinfo = lookup
    content, headers = _signed({"user_id": 42, "webhook_id": 7}, "webhook-secret", clock)

    async with _client() as client:
        response = await client.post(
            "/api/webhooks/identity-provider", content=content, headers=headers
        )

    assert response.status_code == expected_status
    if expected_status == 200:
        assert response.json()["status"] == "ignored"
    assert store.find_by_external_id("42").email == "old@example.com"


def test_settings_dependency_shares_the_cached_settings() -> None:
    assert dependencies.get_app_settings() is get_settings()
