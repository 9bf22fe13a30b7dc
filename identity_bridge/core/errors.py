"""Exception hierarchy raised by the identity bridge."""

from __future__ import annotations


class IdentityBridgeError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(IdentityBridgeError):
    """Raised when settings reference attributes or keys that do not exist."""


class DiscoveryError(IdentityBridgeError):
    """Raised when the provider discovery document cannot be retrieved."""


class InvalidAuthorizationGrantError(IdentityBridgeError):
    """Raised when the provider rejects a refresh token; the user must sign in again."""

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(
            "The provided authorization grant is invalid, expired, revoked, "
            "does not match the redirection URI used in the authorization request, "
            "or was issued to another client. Please sign in again."
        )
        self.detail = detail


class InvalidRequestError(IdentityBridgeError):
    """Raised when the provider rejects an API call, carrying its message."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "The identity provider rejected the request.")
        self.message = message


class WebhookUserInfoRequestError(InvalidRequestError):
    """Raised when the webhook user-info lookup is rejected by the provider."""


class SignatureError(IdentityBridgeError):
    """Base class for signed-message verification failures."""


# Failure kinds, shared by both verification contexts.


class MissingSignatureError(SignatureError):
    """The signature header is absent or empty."""


class MalformedSignatureError(SignatureError):
    """The signature header does not follow ``t=<unix>,signed_payload=<hex>``."""


class StaleTimestampError(SignatureError):
    """The signed timestamp is older than the tolerance window."""


class InvalidSignatureError(SignatureError):
    """The signature does not match the payload and key."""


# Verification contexts.


class RequestSignatureError(SignatureError):
    """Verification of a signed API request failed."""


class WebhookSignatureError(SignatureError):
    """Verification of an inbound webhook failed."""


class MissingRequestSignatureError(RequestSignatureError, MissingSignatureError):
    pass


class MalformedRequestSignatureError(RequestSignatureError, MalformedSignatureError):
    pass


class StaleRequestTimestampError(RequestSignatureError, StaleTimestampError):
    pass


class InvalidRequestSignatureError(RequestSignatureError, InvalidSignatureError):
    pass


class MissingWebhookSignatureError(WebhookSignatureError, MissingSignatureError):
    pass


class MalformedWebhookSignatureError(WebhookSignatureError, MalformedSignatureError):
    pass


class StaleWebhookTimestampError(WebhookSignatureError, StaleTimestampError):
    pass


class InvalidWebhookSignatureError(WebhookSignatureError, InvalidSignatureError):
    pass


__all__ = [
    "ConfigurationError",
    "DiscoveryError",
    "IdentityBridgeError",
    "InvalidAuthorizationGrantError",
    "InvalidRequestError",
    "InvalidRequestSignatureError",
    "InvalidSignatureError",
    "InvalidWebhookSignatureError",
    "MalformedRequestSignatureError",
    "MalformedSignatureError",
    "MalformedWebhookSignatureError",
    "MissingRequestSignatureError",
    "MissingSignatureError",
    "MissingWebhookSignatureError",
    "RequestSignatureError",
    "SignatureError",
    "StaleRequestTimestampError",
    "StaleTimestampError",
    "StaleWebhookTimestampError",
    "WebhookSignatureError",
    "WebhookUserInfoRequestError",
]
