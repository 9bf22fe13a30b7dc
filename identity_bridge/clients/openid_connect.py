"""
OpenID Connect client utilities.

These helpers drive the authorization-code flow, the refresh-token lifecycle
and session revocation against the identity provider.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional
from urllib.parse import quote, urlencode

import httpx
from fastapi import status

from identity_bridge.clients.discovery import DiscoveryClient
from identity_bridge.core.config import IdentityProviderSettings
from identity_bridge.core.errors import InvalidAuthorizationGrantError
from identity_bridge.schemas.auth import TokenPair
from identity_bridge.utils.http import bearer_headers

logger = logging.getLogger(__name__)

DEFAULT_SCOPE = ("openid",)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint does not return a usable token pair."""


def _parse_token_response(
    response: httpx.Response, *, fallback_refresh_token: Optional[str] = None
) -> TokenPair:
    if response.status_code != status.HTTP_200_OK:
        raise OAuthTokenExchangeError(f"status {response.status_code}")
    try:
        payload = response.json()
    except ValueError as exc:
        raise OAuthTokenExchangeError("non-JSON token response") from exc
    if not isinstance(payload, dict):
        raise OAuthTokenExchangeError("unexpected token response")
    if payload.get("error"):
        raise OAuthTokenExchangeError(str(payload["error"]))

    access_token = payload.get("access_token")
    refresh_token = payload.get("refresh_token") or fallback_refresh_token
    if not access_token or not refresh_token:
        raise OAuthTokenExchangeError("incomplete token payload")
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


class TokenExchanger:
    """Build authorization URLs and obtain token pairs from the token endpoint."""

    def __init__(
        self,
        settings: IdentityProviderSettings,
        discovery: DiscoveryClient,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._discovery = discovery
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._settings.http_timeout_seconds, transport=self._transport
        )

    async def authorization_uri(
        self, scope: Iterable[str] = DEFAULT_SCOPE, state: Optional[str] = None
    ) -> str:
        """Construct the URL that starts the authorization-code flow."""
        metadata = await self._discovery.metadata()
        params = {
            "client_id": self._settings.client_identifier,
            "redirect_uri": str(self._settings.redirect_uri),
            "response_type": "code",
            "scope": " ".join(scope),
        }
        if state is not None:
            params["state"] = state
        return f"{metadata.authorization_endpoint}?{urlencode(params, quote_via=quote)}"

    async def exchange_code(self, code: str) -> Optional[TokenPair]:
        """
        Exchange an authorization code for a token pair.

        A rejected code is an expected outcome of the sign-in flow, so any
        provider error yields ``None`` and the caller restarts the flow.
        """
        metadata = await self._discovery.metadata()
        payload = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self._settings.client_identifier,
            "client_secret": self._settings.client_secret,
            "redirect_uri": str(self._settings.redirect_uri),
        }

        async with self._client() as client:
            response = await client.post(metadata.token_endpoint, data=payload)

        try:
            return _parse_token_response(response)
        except OAuthTokenExchangeError as exc:
            logger.warning("Authorization code exchange rejected: %s", exc)
            return None

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Obtain a new token pair; a rejection means the user must sign in again."""
        metadata = await self._discovery.metadata()
        payload = {
            "grant_type": "refresh_token",
            "client_id": self._settings.client_identifier,
            "client_secret": self._settings.client_secret,
            "refresh_token": refresh_token,
        }

        async with self._client() as client:
            response = await client.post(metadata.token_endpoint, data=payload)

        try:
            return _parse_token_response(response, fallback_refresh_token=refresh_token)
        except OAuthTokenExchangeError as exc:
            logger.warning("Refresh token rejected: %s", exc)
            raise InvalidAuthorizationGrantError(str(exc)) from exc


class SessionRevoker:
    """End provider sessions, either by token revocation or the sign-out API."""

    def __init__(
        self,
        settings: IdentityProviderSettings,
        discovery: DiscoveryClient,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._discovery = discovery
        self._transport = transport

    async def revoke(self, token: str, via_api_session: bool = False) -> httpx.Response:
        """
        Invalidate ``token`` at the provider and return the raw response.

        The sign-out API answers 204 on success and OAuth revocation answers
        200 with an empty JSON body; status handling is left to the caller.
        """
        async with httpx.AsyncClient(
            timeout=self._settings.http_timeout_seconds, transport=self._transport
        ) as client:
            if via_api_session:
                url = f"{self._settings.base_uri}{self._settings.api_sign_out_path}"
                response = await client.delete(url, headers=bearer_headers(token))
            else:
                metadata = await self._discovery.metadata()
                url = metadata.revocation_endpoint or f"{self._settings.base_uri}/oauth/revoke"
                response = await client.post(
                    url,
                    json={
                        "token": token,
                        "client_id": self._settings.client_identifier,
                        "client_secret": self._settings.client_secret,
                    },
                    headers=bearer_headers(token),
                )

        logger.info("Revocation via %s answered %s", url, response.status_code)
        return response

    async def logout_uri(self) -> str:
        """URL that ends the browser session at the provider, then returns to the client."""
        metadata = await self._discovery.metadata()
        end_session = metadata.end_session_endpoint or f"{self._settings.base_uri}/logout"
        root = str(self._settings.root_uri) if self._settings.root_uri else ""
        return f"{end_session}?{urlencode({'post_sign_out_redirect_url': root})}"


__all__ = [
    "DEFAULT_SCOPE",
    "OAuthTokenExchangeError",
    "SessionRevoker",
    "TokenExchanger",
]
