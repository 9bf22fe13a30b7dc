"""Pydantic schemas exposed by the identity bridge."""

from .auth import (
    LogoutPayload,
    ProviderMetadata,
    ProviderProfile,
    TokenPair,
    UserSyncPayload,
    WebhookEvent,
)

__all__ = [
    "LogoutPayload",
    "ProviderMetadata",
    "ProviderProfile",
    "TokenPair",
    "UserSyncPayload",
    "WebhookEvent",
]
