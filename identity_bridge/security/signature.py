"""
Compact signed-message format shared by outbound requests and webhooks.

A signed message travels in the ``IP-Signature`` header as
``t=<unix seconds>,signed_payload=<hex HMAC-SHA256>``. The HMAC covers
``b"<unix seconds>.<payload>"``; the payload is signed as raw bytes.
"""

from __future__ import annotations

import hmac
import re
from hashlib import sha256
from typing import Union

from pydantic import BaseModel, ConfigDict

from identity_bridge.core.errors import MalformedSignatureError

SIGNATURE_HEADER = "IP-Signature"

_TIMESTAMP_PREFIX = "t"
_SIGNATURE_PREFIX = "signed_payload"
_TIMESTAMP = re.compile(r"[0-9]{1,19}")

Payload = Union[str, bytes]


class SignedMessage(BaseModel):
    """Decoded form of a signature header."""

    model_config = ConfigDict(frozen=True)

    timestamp: int
    signature: str


def encode(timestamp: int, signature_hex: str) -> str:
    return f"{_TIMESTAMP_PREFIX}={int(timestamp)},{_SIGNATURE_PREFIX}={signature_hex}"


def _field(raw: str, prefix: str) -> str:
    name, sep, value = raw.partition("=")
    if not sep or name != prefix:
        raise MalformedSignatureError(f"Signature field {prefix!r} is missing.")
    if not value:
        raise MalformedSignatureError(f"Signature field {prefix!r} is empty.")
    return value


def decode(raw: str) -> SignedMessage:
    """Parse a signature header, raising ``MalformedSignatureError`` on bad input."""
    first, sep, second = raw.partition(",")
    if not sep:
        raise MalformedSignatureError("Signature header must contain two fields.")
    if "," in second:
        raise MalformedSignatureError("Signature header contains unexpected fields.")

    timestamp_value = _field(first, _TIMESTAMP_PREFIX)
    signature_value = _field(second, _SIGNATURE_PREFIX)
    if not _TIMESTAMP.fullmatch(timestamp_value):
        raise MalformedSignatureError("Signature timestamp is not a unix timestamp.")

    return SignedMessage(timestamp=int(timestamp_value), signature=signature_value)


def _as_bytes(value: Payload) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def canonical_message(timestamp: int, payload: Payload) -> bytes:
    """Return the exact bytes both parties feed into the HMAC."""
    return f"{int(timestamp)}.".encode("ascii") + _as_bytes(payload)


def hexdigest(key: str, message: Payload) -> str:
    return hmac.new(key.encode("utf-8"), _as_bytes(message), sha256).hexdigest()


__all__ = [
    "SIGNATURE_HEADER",
    "Payload",
    "SignedMessage",
    "canonical_message",
    "decode",
    "encode",
    "hexdigest",
]
