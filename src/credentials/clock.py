from datetime import datetime, timedelta, timezone
from typing import Protocol

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def to_millis(instant: datetime) -> int:
    """Epoch milliseconds for an aware datetime."""
    return (instant - EPOCH) // timedelta(milliseconds=1)
