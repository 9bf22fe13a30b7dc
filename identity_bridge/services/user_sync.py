"""
Keep local user records in sync with the identity provider.

Token expiry is not tracked locally. A failed profile fetch is taken as the
signal that the access token expired, and triggers a single refresh.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import httpx
from fastapi import status
from pydantic import BaseModel

from identity_bridge.clients.discovery import DiscoveryClient
from identity_bridge.clients.openid_connect import TokenExchanger
from identity_bridge.core.config import IdentityProviderSettings, UserMappingSettings
from identity_bridge.core.errors import ConfigurationError
from identity_bridge.models.user import UserRecord, UserStore
from identity_bridge.schemas.auth import ProviderProfile, TokenPair
from identity_bridge.utils.http import bearer_headers

logger = logging.getLogger(__name__)


def map_attributes(
    profile: Mapping[str, Any],
    tokens: TokenPair,
    *,
    mapping: Mapping[str, str],
    token_attribute: str,
    refresh_token_attribute: str,
) -> Dict[str, Any]:
    """Translate provider claims and tokens into local attribute values.

    Claims missing from ``profile`` map to ``None``.
    """
    attributes: Dict[str, Any] = {
        local: profile.get(claim) for local, claim in mapping.items()
    }
    attributes[token_attribute] = tokens.access_token
    attributes[refresh_token_attribute] = tokens.refresh_token
    return attributes


@dataclass(frozen=True)
class UserAttributeTable:
    """Configured attribute names, checked against the user model's fields."""

    token: str
    refresh_token: str
    external_id: str
    mapping: Dict[str, str]

    @classmethod
    def from_settings(
        cls, settings: UserMappingSettings, user_model: type[BaseModel] = UserRecord
    ) -> "UserAttributeTable":
        fields = set(user_model.model_fields)
        configured = {
            settings.oauth_token_attribute_name,
            settings.oauth_refresh_token_attribute_name,
            settings.external_id_attribute_name,
            *settings.user_info_attribute_mapping,
        }
        unknown = sorted(configured - fields)
        if unknown:
            raise ConfigurationError(
                f"{user_model.__name__} has no attribute(s): {', '.join(unknown)}"
            )
        return cls(
            token=settings.oauth_token_attribute_name,
            refresh_token=settings.oauth_refresh_token_attribute_name,
            external_id=settings.external_id_attribute_name,
            mapping=dict(settings.user_info_attribute_mapping),
        )

    def tokens_of(self, user: BaseModel) -> Optional[TokenPair]:
        access_token = getattr(user, self.token)
        refresh_token = getattr(user, self.refresh_token)
        if not access_token or not refresh_token:
            return None
        return TokenPair(access_token=access_token, refresh_token=refresh_token)


class UserSyncEngine:
    """Fetch provider profiles and create or update the matching local users."""

    def __init__(
        self,
        settings: IdentityProviderSettings,
        attributes: UserAttributeTable,
        discovery: DiscoveryClient,
        token_exchanger: TokenExchanger,
        store: UserStore,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._attributes = attributes
        self._discovery = discovery
        self._exchanger = token_exchanger
        self._store = store
        self._transport = transport

    async def fetch_profile(self, access_token: str) -> Optional[ProviderProfile]:
        """Return the userinfo claims, or ``None`` when the token is not accepted."""
        metadata = await self._discovery.metadata()
        async with httpx.AsyncClient(
            timeout=self._settings.http_timeout_seconds, transport=self._transport
        ) as client:
            response = await client.get(
                metadata.userinfo_endpoint, headers=bearer_headers(access_token)
            )

        if response.status_code != status.HTTP_200_OK:
            logger.info("Userinfo request answered %s", response.status_code)
            return None
        try:
            profile = response.json()
        except ValueError:
            logger.warning("Userinfo response is not JSON")
            return None
        if not isinstance(profile, dict) or not profile.get("sub"):
            logger.warning("Userinfo response carries no subject claim")
            return None
        return profile

    def map_attributes(self, profile: Mapping[str, Any], tokens: TokenPair) -> Dict[str, Any]:
        return map_attributes(
            profile,
            tokens,
            mapping=self._attributes.mapping,
            token_attribute=self._attributes.token,
            refresh_token_attribute=self._attributes.refresh_token,
        )

    async def sync_user(
        self,
        tokens: Optional[TokenPair] = None,
        user: Optional[UserRecord] = None,
    ) -> Optional[UserRecord]:
        """
        Create or update the local user behind ``tokens`` (or behind ``user``).

        When the profile cannot be fetched for a known user, the user's refresh
        token is exchanged once and the fetch retried. An
        ``InvalidAuthorizationGrantError`` from that refresh propagates.
        Returns ``None`` when no profile could be obtained.
        """
        if user is not None and tokens is None:
            tokens = self._attributes.tokens_of(user)

        profile = await self.fetch_profile(tokens.access_token) if tokens else None

        target: Optional[UserRecord] = None
        if profile is not None:
            target = self._store.find_by_external_id(str(profile["sub"]))
        elif user is not None:
            stored_refresh = getattr(user, self._attributes.refresh_token)
            if not stored_refresh:
                logger.info("User %s has no refresh token; sign-in required", user.id)
                return None
            logger.info("Profile fetch failed for user %s; refreshing token", user.id)
            tokens = await self._exchanger.refresh(stored_refresh)
            profile = await self.fetch_profile(tokens.access_token)
            target = user

        if profile is None or tokens is None:
            return None

        saved = self._store.create_or_update(
            self.map_attributes(profile, tokens), existing=target
        )
        return self._store.reload(saved)

    def apply_webhook_profile(self, profile: Any) -> Optional[UserRecord]:
        """Refresh a known user's claims from a webhook lookup, keeping its tokens."""
        if not isinstance(profile, Mapping):
            logger.warning("Ignoring webhook user-info that is not a JSON object")
            return None
        subject = profile.get("sub")
        if not subject:
            return None
        user = self._store.find_by_external_id(str(subject))
        if user is None:
            logger.info("Ignoring webhook for unknown subject %s", subject)
            return None
        tokens = self._attributes.tokens_of(user)
        if tokens is None:
            attributes = {
                local: profile.get(claim) for local, claim in self._attributes.mapping.items()
            }
        else:
            attributes = self.map_attributes(profile, tokens)
        saved = self._store.create_or_update(attributes, existing=user)
        return self._store.reload(saved)


__all__ = ["UserAttributeTable", "UserSyncEngine", "map_attributes"]
