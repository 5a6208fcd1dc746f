"""
Clock abstraction for row timestamps.

All timestamps written by MetaStore are Unix milliseconds obtained from a
Clock, so tests can pin them.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of the current time in Unix milliseconds."""

    def now_ms(self) -> int: ...


class SystemClock:
    """Wall clock."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class FixedClock:
    """Clock that only moves when told to.

    Example:
        >>> clock = FixedClock(1_700_000_000_000)
        >>> clock.advance(500)
        >>> clock.now_ms()
        1700000000500
    """

    def __init__(self, now_ms: int = 0) -> None:
        self._now_ms = now_ms

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, ms: int) -> None:
        self._now_ms += ms

    def set(self, now_ms: int) -> None:
        self._now_ms = now_ms
