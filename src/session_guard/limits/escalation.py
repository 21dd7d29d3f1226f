"""Violation tracking and escalation to a timed block.

Every rejected over-limit call counts as one violation. Violations
survive window rollover and are cleared only by an explicit reset or by
escalating into a block. Reaching the threshold blocks the key for
``block_duration_ms`` and starts it over with a clean slate.
"""

from __future__ import annotations

import math
from enum import StrEnum

import structlog

from session_guard.clock import Clock
from session_guard.limits.store import StateStore, ViolationState

logger = structlog.get_logger()


class Verdict(StrEnum):
    """Outcome of recording a violation."""

    WARN = "warn"
    BLOCK = "block"


class ViolationEscalator:
    """Promote repeat offenders from per-window rejections to a block."""

    def __init__(
        self,
        store: StateStore,
        clock: Clock,
        *,
        violations_before_block: int = 3,
        block_duration_ms: int = 5 * 60 * 1000,
    ) -> None:
        self._store = store
        self._clock = clock
        self.violations_before_block = violations_before_block
        self.block_duration_ms = block_duration_ms

    @property
    def block_duration_minutes(self) -> int:
        return math.ceil(self.block_duration_ms / 60_000)

    def record_violation(self, key: str) -> Verdict:
        """Count one violation for *key* and decide whether to block.

        On escalation the violation counter and the window are cleared,
        so the key resumes from a clean state once the block elapses.
        """
        now = self._clock.now_ms()
        state = self._store.get_violation(key) or ViolationState(key=key)
        state.violation_count += 1

        if state.violation_count < self.violations_before_block:
            self._store.put_violation(state)
            logger.info(
                "violation_recorded",
                rate_key=key,
                violation_count=state.violation_count,
                threshold=self.violations_before_block,
            )
            return Verdict.WARN

        state.violation_count = 0
        state.blocked_until_ms = now + self.block_duration_ms
        self._store.put_violation(state)

        window = self._store.get_window(key)
        if window is not None:
            window.roll_over(now)
            self._store.put_window(window)

        logger.warning(
            "participant_blocked",
            rate_key=key,
            block_duration_ms=self.block_duration_ms,
        )
        return Verdict.BLOCK

    def block_remaining_ms(self, key: str, now_ms: int) -> int:
        """Milliseconds until the block on *key* lifts, 0 if not blocked."""
        state = self._store.get_violation(key)
        if state is None or state.blocked_until_ms is None:
            return 0
        return max(0, state.blocked_until_ms - now_ms)

    def is_blocked(self, key: str, now_ms: int) -> bool:
        return self.block_remaining_ms(key, now_ms) > 0

    def release_expired(self, key: str, now_ms: int) -> bool:
        """Clear an elapsed block so the key starts with no violations.

        Returns:
            True if a block was released.
        """
        state = self._store.get_violation(key)
        if state is None or state.blocked_until_ms is None:
            return False
        if state.blocked_until_ms > now_ms:
            return False

        state.blocked_until_ms = None
        state.violation_count = 0
        self._store.put_violation(state)
        logger.info("block_released", rate_key=key)
        return True
