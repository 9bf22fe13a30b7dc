"""
Factory functions to provide shared clients and services as FastAPI dependencies.

Each factory is cached so the discovery document, its lock and the user store
are shared by every request in the process.
"""

from functools import lru_cache

from identity_bridge.clients import (
    DiscoveryClient,
    SessionRevoker,
    SQLiteUserStore,
    TokenExchanger,
    WebhookUserInfoClient,
)
from identity_bridge.core.config import get_settings
from identity_bridge.security import RequestSigner, RequestVerifier
from identity_bridge.services import (
    TokenCipherService,
    UserAttributeTable,
    UserSyncEngine,
)
from identity_bridge.utils.cache import InMemoryCache
from identity_bridge.utils.clock import SystemClock


@lru_cache()
def get_clock() -> SystemClock:
    return SystemClock()


@lru_cache()
def get_discovery_client() -> DiscoveryClient:
    """Provide the process-wide discovery client and its cache."""
    return DiscoveryClient(get_settings().identity_provider, cache=InMemoryCache())


@lru_cache()
def get_token_exchanger() -> TokenExchanger:
    return TokenExchanger(get_settings().identity_provider, get_discovery_client())


@lru_cache()
def get_session_revoker() -> SessionRevoker:
    return SessionRevoker(get_settings().identity_provider, get_discovery_client())


@lru_cache()
def get_request_signer() -> RequestSigner:
    return RequestSigner(clock=get_clock())


@lru_cache()
def get_request_verifier() -> RequestVerifier:
    """Verifier for signed API requests sent by the provider."""
    settings = get_settings()
    return RequestVerifier.for_requests(
        settings.signatures, settings.identity_provider, clock=get_clock()
    )


@lru_cache()
def get_webhook_verifier() -> RequestVerifier:
    """Verifier for webhook deliveries sent by the provider."""
    return RequestVerifier.for_webhooks(get_settings().signatures, clock=get_clock())


@lru_cache()
def get_webhook_userinfo_client() -> WebhookUserInfoClient:
    settings = get_settings()
    return WebhookUserInfoClient(
        settings.identity_provider, settings.signatures, get_request_signer()
    )


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = get_settings()
    secret = settings.token_encryption_secret or settings.identity_provider.client_secret
    return TokenCipherService(
        secret=secret, retired_secrets=settings.token_encryption_retired_secrets
    )


@lru_cache()
def get_user_attribute_table() -> UserAttributeTable:
    """Resolve configured attribute names; fails fast on unknown names."""
    return UserAttributeTable.from_settings(get_settings().user_mapping)


@lru_cache()
def get_user_store() -> SQLiteUserStore:
    settings = get_settings()
    attributes = get_user_attribute_table()
    return SQLiteUserStore(
        settings.user_store_db_path,
        token_cipher=get_token_cipher_service(),
        encrypted_fields=(attributes.token, attributes.refresh_token),
        external_id_field=attributes.external_id,
    )


@lru_cache()
def get_user_sync_engine() -> UserSyncEngine:
    return UserSyncEngine(
        get_settings().identity_provider,
        get_user_attribute_table(),
        get_discovery_client(),
        get_token_exchanger(),
        get_user_store(),
    )


__all__ = [
    "get_clock",
    "get_discovery_client",
    "get_request_signer",
    "get_request_verifier",
    "get_session_revoker",
    "get_token_cipher_service",
    "get_token_exchanger",
    "get_user_attribute_table",
    "get_user_store",
    "get_user_sync_engine",
    "get_webhook_userinfo_client",
    "get_webhook_verifier",
]
