"""Rate limiting engine facade.

Wires the limiter, escalator, capacity gate and reaper around one shared
store and exposes the operations request handlers call. Construct one
instance per process (the FastAPI lifespan does this) and pass it to
callers; :func:`get_rate_limit_service_instance` exists only for call
sites that cannot receive a dependency.

Limits are enforced per process. Several server instances each keep
their own counters.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from functools import lru_cache

import structlog

from session_guard.clock import Clock, MonotonicClock
from session_guard.config import Settings, get_settings
from session_guard.errors import InvalidPolicyError
from session_guard.limits.capacity import CapacityGate
from session_guard.limits.decision import Decision
from session_guard.limits.escalation import ViolationEscalator
from session_guard.limits.reaper import Reaper
from session_guard.limits.sliding_window import SlidingWindowLimiter
from session_guard.limits.store import KeyedStateStore, StateStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class RateLimitPolicy:
    """Compiled limits applied by :class:`RateLimitService`."""

    idea_limit: int = 6
    idea_window_ms: int = 60_000
    session_capacity: int = 50
    violations_before_block: int = 3
    block_duration_ms: int = 5 * 60 * 1000
    staleness_multiplier: int = 10
    reaper_interval_seconds: float = 300.0
    enabled: bool = True

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool):
                continue
            if value <= 0:
                raise InvalidPolicyError(f.name, value)

    @classmethod
    def from_settings(cls, s: Settings) -> RateLimitPolicy:
        """Create from Settings fields."""
        return cls(
            idea_limit=s.idea_limit,
            idea_window_ms=s.idea_window_ms,
            session_capacity=s.session_capacity,
            violations_before_block=s.violations_before_block,
            block_duration_ms=s.block_duration_ms,
            staleness_multiplier=s.staleness_multiplier,
            reaper_interval_seconds=s.reaper_interval_seconds,
            enabled=s.rate_limit_enabled,
        )


class RateLimitService:
    """Idea submission rate limits and session capacity for one process."""

    def __init__(
        self,
        policy: RateLimitPolicy | None = None,
        *,
        clock: Clock | None = None,
        store: StateStore | None = None,
    ) -> None:
        self.policy = policy or RateLimitPolicy()
        self._clock = clock or MonotonicClock()
        self._store = store if store is not None else KeyedStateStore()

        self._escalator = ViolationEscalator(
            self._store,
            self._clock,
            violations_before_block=self.policy.violations_before_block,
            block_duration_ms=self.policy.block_duration_ms,
        )
        self._limiter = SlidingWindowLimiter(self._store, self._clock, self._escalator)
        self._gate = CapacityGate(self._store)
        self.reaper = Reaper(
            self._store,
            self._clock,
            window_size_ms=self.policy.idea_window_ms,
            staleness_multiplier=self.policy.staleness_multiplier,
            interval_seconds=self.policy.reaper_interval_seconds,
        )

    # --- Checks ---

    def check_idea_submission(self, participant_id: str) -> Decision:
        """Count one idea submission for *participant_id*."""
        if not self.policy.enabled:
            return Decision.allow(remaining=self.policy.idea_limit)
        return self._limiter.check(
            participant_id,
            self.policy.idea_limit,
            self.policy.idea_window_ms,
            noun="ideas",
        )

    def check_participant_join(self, session_id: str, participant_id: str) -> Decision:
        """Claim a seat in *session_id* for *participant_id*."""
        if not self.policy.enabled:
            return Decision.allow(remaining=self.policy.session_capacity)
        return self._gate.join(session_id, participant_id, self.policy.session_capacity)

    def remove_participant(self, session_id: str, participant_id: str) -> None:
        self._gate.leave(session_id, participant_id)

    def get_status(self, participant_id: str) -> Decision:
        """Read-only view of the participant's quota (for UI display)."""
        if not self.policy.enabled:
            return Decision.allow(remaining=self.policy.idea_limit)
        return self._limiter.get_status(
            participant_id,
            self.policy.idea_limit,
            self.policy.idea_window_ms,
            noun="ideas",
        )

    def session_occupancy(self, session_id: str) -> int:
        return self._gate.occupancy(session_id)

    # --- Administration ---

    def reset(self, participant_id: str) -> None:
        """Clear window, violations and block of one participant."""
        if self._store.drop_rate_state(participant_id):
            logger.info("rate_state_reset", participant_id=participant_id)

    def clear_session(self, session_id: str) -> None:
        if self._gate.clear(session_id):
            logger.info("session_cleared", session_id=session_id)

    def start(self) -> None:
        """Start the background reaper. Call from inside the event loop."""
        self.reaper.start()

    def destroy(self) -> None:
        """Stop the reaper and release all held state. Idempotent."""
        self.reaper.stop()
        self._store.clear()
        logger.info("rate_limit_service_destroyed")

    async def aclose(self) -> None:
        """Like :meth:`destroy`, but waits for the reaper task to finish."""
        await self.reaper.aclose()
        self.destroy()


@lru_cache(maxsize=1)
def get_rate_limit_service_instance() -> RateLimitService:
    """Process-wide service built from settings.

    Prefer receiving the service through dependency injection; this
    accessor is for code paths that cannot.
    """
    return RateLimitService(RateLimitPolicy.from_settings(get_settings()))
