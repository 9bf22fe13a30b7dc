"""Fetch the latest user details from the provider in response to a webhook."""

from __future__ import annotations

import json
import logging

import httpx

from identity_bridge.core.config import IdentityProviderSettings, SignatureSettings
from identity_bridge.core.errors import ConfigurationError, WebhookUserInfoRequestError
from identity_bridge.security.signature import SIGNATURE_HEADER
from identity_bridge.security.signer import RequestSigner

logger = logging.getLogger(__name__)


class WebhookUserInfoClient:
    """Signed lookup of a user's details, keyed by the webhook that announced a change."""

    def __init__(
        self,
        settings: IdentityProviderSettings,
        signature_settings: SignatureSettings,
        signer: RequestSigner,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._signature_settings = signature_settings
        self._signer = signer
        self._transport = transport

    @property
    def url(self) -> str:
        return f"{self._settings.base_uri}/api/userinfo"

    async def fetch(self, user_id: str | int, webhook_id: str | int) -> httpx.Response:
        """Request user details; a non-2xx answer raises ``WebhookUserInfoRequestError``."""
        key = self._signature_settings.webhook_secret_key
        if not key:
            raise ConfigurationError("A webhook secret key is required to sign user-info lookups.")

        payload = {
            "uid": self._settings.client_identifier,
            "webhook_id": str(webhook_id),
            "user_id": str(user_id),
        }
        headers = {
            "Content-Type": "application/json",
            SIGNATURE_HEADER: self._signer.sign(
                json.dumps(payload, separators=(",", ":")), key
            ),
        }

        async with httpx.AsyncClient(
            timeout=self._settings.http_timeout_seconds, transport=self._transport
        ) as client:
            response = await client.get(self.url, params=payload, headers=headers)

        if not response.is_success:
            raise WebhookUserInfoRequestError(_error_message(response))
        return response


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    logger.warning("Webhook user-info lookup failed with status %s", response.status_code)
    return f"User-info lookup failed with status {response.status_code}."


__all__ = ["WebhookUserInfoClient"]
