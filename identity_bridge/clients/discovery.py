"""
OpenID Connect discovery.

The discovery document is fetched once and memoized in an injected cache so a
process talks to ``/.well-known/openid-configuration`` at most once per TTL.
"""

from __future__ import annotations

import asyncio
import logging
import weakref

import httpx
from pydantic import ValidationError

from identity_bridge.core.config import IdentityProviderSettings
from identity_bridge.core.errors import DiscoveryError
from identity_bridge.schemas.auth import ProviderMetadata
from identity_bridge.utils.cache import CacheBackend, InMemoryCache
from identity_bridge.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/openid-configuration"


class DiscoveryClient:
    """Resolve provider endpoints from the discovery document."""

    def __init__(
        self,
        settings: IdentityProviderSettings,
        *,
        cache: CacheBackend | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self._settings = settings
        self._cache = cache if cache is not None else InMemoryCache()
        self._transport = transport
        self._retry_config = retry_config or RetryConfig(attempts=2, backoff_seconds=0.5)
        self._locks: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def _lock(self) -> asyncio.Lock:
        """Return the fetch lock of the running event loop."""
        loop = asyncio.get_running_loop()
        lock = self._locks.get(loop)
        if lock is None:
            lock = self._locks[loop] = asyncio.Lock()
        return lock

    @property
    def cache_key(self) -> str:
        return f"identity-bridge:discovery:{self._settings.client_identifier}"

    @property
    def discovery_url(self) -> str:
        return f"{self._settings.base_uri}{WELL_KNOWN_PATH}"

    async def metadata(self) -> ProviderMetadata:
        """Return provider metadata, fetching it on a cache miss."""
        cached = self._cache.get(self.cache_key)
        if cached is not None:
            return cached

        async with self._lock():
            cached = self._cache.get(self.cache_key)
            if cached is not None:
                return cached
            metadata = await self._fetch()
            self._cache.set(
                self.cache_key, metadata, self._settings.discovery_cache_ttl_seconds
            )
            return metadata

    async def _fetch(self) -> ProviderMetadata:
        logger.info("Fetching provider discovery document from %s", self.discovery_url)
        try:
            async with httpx.AsyncClient(
                timeout=self._settings.http_timeout_seconds, transport=self._transport
            ) as client:
                response = await request_with_retry(
                    client.get,
                    self.discovery_url,
                    headers={"Accept": "application/json"},
                    retry_config=self._retry_config,
                )
            return ProviderMetadata.model_validate(response.json())
        except httpx.HTTPError as exc:
            raise DiscoveryError(f"Discovery request failed: {exc}") from exc
        except (ValueError, ValidationError) as exc:
            raise DiscoveryError("Discovery document is not valid provider metadata.") from exc


__all__ = ["DiscoveryClient", "WELL_KNOWN_PATH"]
