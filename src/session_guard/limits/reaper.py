"""Periodic eviction of idle rate limit state.

Capacity pools are never swept: an idle member still holds a seat.
"""

from __future__ import annotations

import asyncio
import contextlib

import structlog

from session_guard.clock import Clock
from session_guard.limits.store import StateStore

logger = structlog.get_logger()

DEFAULT_INTERVAL_SECONDS = 300.0


class Reaper:
    """Evict rate records idle for ``staleness_multiplier`` windows.

    ``start()`` schedules :meth:`sweep` as an asyncio task on the running
    loop and keeps its handle so :meth:`stop` can cancel it.
    """

    def __init__(
        self,
        store: StateStore,
        clock: Clock,
        *,
        window_size_ms: int,
        staleness_multiplier: int = 10,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._store = store
        self._clock = clock
        self._max_idle_ms = window_size_ms * staleness_multiplier
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def sweep(self) -> int:
        """Delete stale rate records.

        A key is stale when its last activity is older than
        ``now - max_idle``. Keys under an active block are kept,
        otherwise eviction would lift the block early.

        Returns:
            Number of keys evicted.
        """
        now = self._clock.now_ms()
        cutoff = now - self._max_idle_ms
        evicted = 0

        for key in self._store.rate_keys():
            violation = self._store.get_violation(key)
            if violation is not None and violation.is_blocked(now):
                continue
            window = self._store.get_window(key)
            if window is not None and window.last_activity_ms >= cutoff:
                continue
            if self._store.drop_rate_state(key):
                evicted += 1

        return evicted

    def start(self) -> None:
        """Schedule periodic sweeps. Must be called inside a running loop."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="rate-limit-reaper"
        )
        logger.info("reaper_started", interval_seconds=self._interval)

    def stop(self) -> None:
        """Cancel the scheduled sweep. Safe to call when not started."""
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.info("reaper_stopped")

    async def aclose(self) -> None:
        """Cancel the scheduled sweep and wait until the task has finished."""
        task = self._task
        self.stop()
        if task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            self.run_once()

    def run_once(self) -> int:
        """One sweep iteration; failures are logged, never raised."""
        try:
            evicted = self.sweep()
        except Exception:
            logger.exception("reaper_sweep_error")
            return 0
        if evicted:
            logger.debug("reaper_sweep", keys_removed=evicted)
        return evicted
