"""Time source for expiry and quota logic.

All "now" reads in the billing and listing code go through a ``Clock`` so the
state machine can be driven deterministically in tests. Times are naive UTC to
match the database columns.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time, naive UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment

    def advance(self, **delta: float) -> datetime:
        self._now = self._now + timedelta(**delta)
        return self._now


def start_of_month(moment: datetime) -> datetime:
    return datetime(moment.year, moment.month, 1)
