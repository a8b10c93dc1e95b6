# activation/clock.py
import time
from datetime import datetime, timedelta, timezone
from typing import Protocol

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
# latest instant a datetime can represent, 9999-12-31T23:59:59.999Z
MAX_MILLIS = 253_402_300_799_999


class Clock(Protocol):
    def now_millis(self) -> int: ...


class SystemClock:
    def now_millis(self) -> int:
        return time.time_ns() // 1_000_000


class FixedClock:
    """Manually driven clock for tests and dry runs."""

    def __init__(self, now_millis: int = 0):
        self._now = int(now_millis)

    def now_millis(self) -> int:
        return self._now

    def set(self, now_millis: int) -> None:
        self._now = int(now_millis)

    def advance(self, millis: int) -> None:
        self._now += int(millis)


def to_millis(value: datetime) -> int:
    """Epoch millis of an aware datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_millis(millis: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=millis)


def format_millis(millis: int) -> str:
    return from_millis(millis).strftime("%Y-%m-%d %H:%M:%S UTC")
