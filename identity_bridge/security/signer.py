"""Produce signature headers for outbound payloads."""

from __future__ import annotations

from identity_bridge.security import signature
from identity_bridge.utils.clock import Clock, SystemClock


class RequestSigner:
    """Sign payloads with HMAC-SHA256 at the current time."""

    def __init__(self, *, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    def sign(self, payload: signature.Payload, key: str) -> str:
        timestamp = int(self._clock.now().timestamp())
        digest = signature.hexdigest(key, signature.canonical_message(timestamp, payload))
        return signature.encode(timestamp, digest)


__all__ = ["RequestSigner"]
