"""
Verification of inbound signed messages.

The same algorithm guards signed API requests and webhooks. Each context has
its own tolerance window, default key and error classes so callers can tell a
rejected webhook delivery apart from a rejected API call.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from identity_bridge.core import errors
from identity_bridge.core.config import (
    IdentityProviderSettings,
    SignatureSettings,
)
from identity_bridge.security import signature
from identity_bridge.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureErrorKinds:
    """Concrete exception classes raised by one verification context."""

    missing: type[errors.MissingSignatureError]
    malformed: type[errors.MalformedSignatureError]
    stale: type[errors.StaleTimestampError]
    invalid: type[errors.InvalidSignatureError]


REQUEST_ERRORS = SignatureErrorKinds(
    missing=errors.MissingRequestSignatureError,
    malformed=errors.MalformedRequestSignatureError,
    stale=errors.StaleRequestTimestampError,
    invalid=errors.InvalidRequestSignatureError,
)

WEBHOOK_ERRORS = SignatureErrorKinds(
    missing=errors.MissingWebhookSignatureError,
    malformed=errors.MalformedWebhookSignatureError,
    stale=errors.StaleWebhookTimestampError,
    invalid=errors.InvalidWebhookSignatureError,
)


class RequestVerifier:
    """Validate ``t=...,signed_payload=...`` headers against a payload and key.

    Timestamps older than ``tolerance_minutes`` are rejected. Timestamps in the
    future are accepted.
    """

    def __init__(
        self,
        *,
        tolerance_minutes: int,
        default_key: Optional[str],
        error_kinds: SignatureErrorKinds,
        clock: Clock | None = None,
        context: str = "request",
    ) -> None:
        self._tolerance_minutes = tolerance_minutes
        self._default_key = default_key
        self._errors = error_kinds
        self._clock = clock or SystemClock()
        self._context = context

    @classmethod
    def for_requests(
        cls,
        signature_settings: SignatureSettings,
        provider_settings: IdentityProviderSettings,
        *,
        clock: Clock | None = None,
    ) -> "RequestVerifier":
        return cls(
            tolerance_minutes=signature_settings.request_tolerance,
            default_key=signature_settings.request_signing_key
            or provider_settings.client_secret,
            error_kinds=REQUEST_ERRORS,
            clock=clock,
            context="request",
        )

    @classmethod
    def for_webhooks(
        cls,
        signature_settings: SignatureSettings,
        *,
        clock: Clock | None = None,
    ) -> "RequestVerifier":
        return cls(
            tolerance_minutes=signature_settings.webhook_tolerance,
            default_key=signature_settings.webhook_secret_key,
            error_kinds=WEBHOOK_ERRORS,
            clock=clock,
            context="webhook",
        )

    def verify(
        self,
        signature_header: Optional[str],
        payload: signature.Payload,
        key: Optional[str] = None,
        tolerance: Optional[int] = None,
    ) -> bool:
        if not signature_header:
            raise self._errors.missing(f"Missing {signature.SIGNATURE_HEADER} header.")

        try:
            message = signature.decode(signature_header)
        except errors.MalformedSignatureError as exc:
            raise self._errors.malformed(str(exc)) from exc

        tolerance_minutes = self._tolerance_minutes if tolerance is None else tolerance
        oldest_allowed = self._clock.now() - timedelta(minutes=tolerance_minutes)
        if message.timestamp < oldest_allowed.timestamp():
            logger.warning("Rejected stale %s signature (t=%s)", self._context, message.timestamp)
            raise self._errors.stale("Signature timestamp is outside the tolerance window.")

        signing_key = key or self._default_key
        if not signing_key:
            raise errors.ConfigurationError(f"No signing key configured for {self._context} signatures.")

        expected = signature.hexdigest(
            signing_key, signature.canonical_message(message.timestamp, payload)
        )
        if not hmac.compare_digest(expected.encode("utf-8"), message.signature.encode("utf-8")):
            logger.warning("Rejected %s with invalid signature", self._context)
            raise self._errors.invalid("Signature does not match the payload.")

        return True


__all__ = ["REQUEST_ERRORS", "RequestVerifier", "SignatureErrorKinds", "WEBHOOK_ERRORS"]
