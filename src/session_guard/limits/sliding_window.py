"""In-memory window rate limiter with violation escalation."""

from __future__ import annotations

import structlog

from session_guard.clock import Clock
from session_guard.limits.decision import Decision
from session_guard.limits.escalation import Verdict, ViolationEscalator
from session_guard.limits.store import StateStore, WindowState

logger = structlog.get_logger()

TEMPORARY_BLOCK_REASON = "Rate limit exceeded. Temporary block in effect."


def describe_window(window_size_ms: int) -> str:
    """Human-readable window length, e.g. ``minute`` or ``30 seconds``."""
    if window_size_ms % 60_000 == 0:
        minutes = window_size_ms // 60_000
        return "minute" if minutes == 1 else f"{minutes} minutes"
    if window_size_ms % 1000 == 0:
        seconds = window_size_ms // 1000
        return "second" if seconds == 1 else f"{seconds} seconds"
    return f"{window_size_ms} ms"


class SlidingWindowLimiter:
    """N actions per key per window.

    The window starts at the first action and rolls over once it has
    fully elapsed. Rollover is suppressed while a block is active.

    Single-instance only: state lives in the injected store.
    For multi-instance deployments back the store with Redis.
    """

    def __init__(
        self,
        store: StateStore,
        clock: Clock,
        escalator: ViolationEscalator,
    ) -> None:
        self._store = store
        self._clock = clock
        self._escalator = escalator

    def check(
        self,
        key: str,
        limit: int,
        window_size_ms: int,
        *,
        noun: str = "actions",
    ) -> Decision:
        """Count one action for *key* and decide whether it may proceed.

        Args:
            key: Rate key, e.g. a participant id.
            limit: Max actions per window.
            window_size_ms: Window length in milliseconds.
            noun: What is being counted, used in the rejection reason.

        Returns:
            Decision. A blocked key is rejected without consuming quota.
        """
        now = self._clock.now_ms()

        block_remaining = self._escalator.block_remaining_ms(key, now)
        if block_remaining > 0:
            window = self._store.get_window(key)
            if window is not None:
                window.last_activity_ms = now
                self._store.put_window(window)
            return _blocked(block_remaining)

        self._escalator.release_expired(key, now)

        window = self._store.get_window(key)
        if window is None:
            window = WindowState(key=key, window_start_ms=now)
        elif window.is_expired(now, window_size_ms):
            window.roll_over(now)

        window.count += 1
        window.last_activity_ms = now
        self._store.put_window(window)

        reset_in = window.reset_in_ms(now, window_size_ms)
        if window.count <= limit:
            return Decision.allow(remaining=limit - window.count, reset_in_ms=reset_in)

        if self._escalator.record_violation(key) is Verdict.BLOCK:
            duration = self._escalator.block_duration_ms
            minutes = self._escalator.block_duration_minutes
            unit = "minute" if minutes == 1 else "minutes"
            return Decision.deny(
                reason=f"Too many violations. Blocked for {minutes} {unit}.",
                reset_in_ms=duration,
                retry_after_ms=duration,
            )

        logger.debug("rate_limit_exceeded", rate_key=key, count=window.count)
        return Decision.deny(
            reason=_exceeded_reason(limit, window_size_ms, noun),
            reset_in_ms=reset_in,
            retry_after_ms=reset_in,
        )

    def get_status(
        self,
        key: str,
        limit: int,
        window_size_ms: int,
        *,
        noun: str = "actions",
    ) -> Decision:
        """Project what ``check`` would see, without mutating anything."""
        now = self._clock.now_ms()

        block_remaining = self._escalator.block_remaining_ms(key, now)
        if block_remaining > 0:
            return _blocked(block_remaining)

        window = self._store.get_window(key)
        if window is None or window.is_expired(now, window_size_ms):
            return Decision.allow(remaining=limit)

        remaining = max(0, limit - window.count)
        reset_in = window.reset_in_ms(now, window_size_ms)
        if remaining == 0:
            return Decision.deny(
                reason=_exceeded_reason(limit, window_size_ms, noun),
                reset_in_ms=reset_in,
                retry_after_ms=reset_in,
            )
        return Decision.allow(remaining=remaining, reset_in_ms=reset_in)


def _blocked(remaining_ms: int) -> Decision:
    return Decision.deny(
        reason=TEMPORARY_BLOCK_REASON,
        reset_in_ms=remaining_ms,
        retry_after_ms=remaining_ms,
    )


def _exceeded_reason(limit: int, window_size_ms: int, noun: str) -> str:
    return (
        f"Rate limit exceeded. Maximum {limit} {noun} "
        f"per {describe_window(window_size_ms)}."
    )
