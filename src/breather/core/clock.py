"""Clock sources for the session engine."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Anything that can report the current wall-clock time in seconds."""

    def now(self) -> float: ...


class SystemClock:
    """Wall-clock time via ``time.time()``.

    Wall-clock time keeps advancing while the process is suspended, which is
    what lets a session notice that it ran out while nobody was polling.
    """

    def now(self) -> float:
        return time.time()


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def now(self) -> float:
        return self._now

    def set(self, value: float) -> None:
        self._now = value

    def advance(self, seconds: float) -> float:
        self._now += seconds
        return self._now
