"""Time sources for issuance and verification.

Everything that reads the wall clock (the document's issue time, the user
buffer's absolute expiry, the verifier's default ``now``) goes through a
:class:`Clock` so tests can pin time.
"""
from __future__ import annotations

import datetime
import time
from typing import Protocol, Union


class Clock(Protocol):
    """Anything that returns the current time as integer UNIX seconds."""

    def now(self) -> int: ...


class SystemClock:
    """The real wall clock."""

    def now(self) -> int:
        return int(time.time())

    def __repr__(self) -> str:
        return "SystemClock()"


class FixedClock:
    """A clock pinned to *timestamp*; :meth:`advance` moves it forward.

    Examples
    --------
    >>> clock = FixedClock(1_700_000_000)
    >>> clock.advance(60)
    >>> clock.now()
    1700000060
    """

    def __init__(self, timestamp: int) -> None:
        self._timestamp = int(timestamp)

    def now(self) -> int:
        return self._timestamp

    def advance(self, seconds: int) -> None:
        self._timestamp += int(seconds)

    def __repr__(self) -> str:
        return f"FixedClock({self._timestamp})"


SYSTEM_CLOCK = SystemClock()

TimeLike = Union[datetime.datetime, int]


def to_unix(moment: TimeLike) -> int:
    """Convert a datetime or integer timestamp to UNIX seconds.

    Naive datetimes are interpreted as UTC.
    """
    if isinstance(moment, datetime.datetime):
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=datetime.timezone.utc)
        return int(moment.timestamp())
    if isinstance(moment, bool) or not isinstance(moment, int):
        raise TypeError(f"expected datetime or int, got {type(moment).__name__}")
    return moment


def resolve_clock(clock: Clock | None) -> Clock:
    return clock if clock is not None else SYSTEM_CLOCK


__all__ = ["Clock", "FixedClock", "SYSTEM_CLOCK", "SystemClock", "TimeLike", "resolve_clock", "to_unix"]
