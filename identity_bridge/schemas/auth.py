"""Schemas related to OAuth flows and provider metadata."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

ProviderProfile = Dict[str, Any]


class TokenPair(BaseModel):
    """Access and refresh token issued together by the provider."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str


class ProviderMetadata(BaseModel):
    """Endpoints advertised by the provider discovery document."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    issuer: Optional[str] = None
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str
    end_session_endpoint: Optional[str] = None
    revocation_endpoint: Optional[str] = None


class LogoutPayload(BaseModel):
    """Payload sent to end a user's session with the provider."""

    external_id: str = Field(..., description="Provider subject of the user signing out.")
    via_api_session: bool = Field(
        False,
        description="Revoke through the provider sign-out API instead of OAuth revocation.",
    )


class WebhookEvent(BaseModel):
    """Notification sent by the provider when a user's details change."""

    model_config = ConfigDict(extra="allow")

    user_id: str | int
    webhook_id: str | int
    event: Optional[str] = None


class UserSyncPayload(BaseModel):
    """Signed request asking the client to refresh a user from the provider."""

    external_id: str


__all__ = [
    "LogoutPayload",
    "ProviderMetadata",
    "ProviderProfile",
    "TokenPair",
    "UserSyncPayload",
    "WebhookEvent",
]
