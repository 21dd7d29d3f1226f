"""Time source for the rate limiting engine.

Every engine component reads "now" through a :class:`Clock` so tests can
drive virtual time with :class:`ManualClock` instead of sleeping.
"""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of the current time in integer milliseconds."""

    def now_ms(self) -> int: ...


class MonotonicClock:
    """Production clock backed by ``time.monotonic_ns``.

    Monotonic so wall-clock adjustments never shorten a block or
    resurrect an expired window.
    """

    def now_ms(self) -> int:
        return time.monotonic_ns() // 1_000_000


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start_ms: int = 0) -> None:
        self._now_ms = start_ms

    def now_ms(self) -> int:
        return self._now_ms

    def advance(self, ms: int) -> None:
        """Move time forward by *ms* milliseconds."""
        if ms < 0:
            raise ValueError("ManualClock cannot move backwards")
        self._now_ms += ms
