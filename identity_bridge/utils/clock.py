"""Clock abstraction so signing and verification can run against fixed time."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, instant: datetime | int | float) -> None:
        if not isinstance(instant, datetime):
            instant = datetime.fromtimestamp(instant, tz=timezone.utc)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, **delta: float) -> None:
        self._instant = self._instant + timedelta(**delta)


__all__ = ["Clock", "FixedClock", "SystemClock"]
