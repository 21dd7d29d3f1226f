"""Keyed in-memory state for the rate limiting engine.

Three record families live side by side:

- ``WindowState``: the current fixed window of one rate key.
- ``ViolationState``: breach history and block expiry of the same
  rate key. Kept as a separate record so it survives window rollover,
  but stored under the same key so ``drop_rate_state`` removes both
  in one step.
- ``CapacityState``: the occupant set of one capacity pool.

Process-local only. For multi-instance deployments replace
``KeyedStateStore`` with a shared backend implementing ``StateStore``;
engine components always write records back through ``put_*`` so a
non-referential store sees every mutation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol


@dataclass
class WindowState:
    """Counter for ``[window_start_ms, window_start_ms + window_size_ms)``."""

    key: str
    window_start_ms: int
    count: int = 0
    last_activity_ms: int = 0

    def is_expired(self, now_ms: int, window_size_ms: int) -> bool:
        return now_ms >= self.window_start_ms + window_size_ms

    def roll_over(self, now_ms: int) -> None:
        self.window_start_ms = now_ms
        self.count = 0

    def reset_in_ms(self, now_ms: int, window_size_ms: int) -> int:
        return max(0, self.window_start_ms + window_size_ms - now_ms)


@dataclass
class ViolationState:
    """Breach counter and block expiry for one rate key."""

    key: str
    violation_count: int = 0
    blocked_until_ms: int | None = None

    def is_blocked(self, now_ms: int) -> bool:
        return self.blocked_until_ms is not None and self.blocked_until_ms > now_ms


@dataclass
class CapacityState:
    """Members currently occupying one pool."""

    key: str
    occupants: set[str] = field(default_factory=set)


class StateStore(Protocol):
    """Storage contract the engine components depend on."""

    def get_window(self, key: str) -> WindowState | None: ...

    def put_window(self, state: WindowState) -> None: ...

    def get_violation(self, key: str) -> ViolationState | None: ...

    def put_violation(self, state: ViolationState) -> None: ...

    def drop_rate_state(self, key: str) -> bool: ...

    def rate_keys(self) -> list[str]: ...

    def get_pool(self, key: str) -> CapacityState | None: ...

    def put_pool(self, state: CapacityState) -> None: ...

    def drop_pool(self, key: str) -> bool: ...

    def clear(self) -> None: ...


class KeyedStateStore:
    """Dict-backed ``StateStore``.

    Not thread-safe: relies on the host serializing calls (a single
    asyncio event loop). Every method runs to completion without
    awaiting, so each call is atomic on the loop.
    """

    def __init__(self) -> None:
        self._windows: dict[str, WindowState] = {}
        self._violations: dict[str, ViolationState] = {}
        self._pools: dict[str, CapacityState] = {}

    # --- Rate records ---

    def get_window(self, key: str) -> WindowState | None:
        return self._windows.get(key)

    def put_window(self, state: WindowState) -> None:
        self._windows[state.key] = state

    def get_violation(self, key: str) -> ViolationState | None:
        return self._violations.get(key)

    def put_violation(self, state: ViolationState) -> None:
        self._violations[state.key] = state

    def drop_rate_state(self, key: str) -> bool:
        """Remove window and violation records of *key* together.

        Returns:
            True if anything was removed.
        """
        window = self._windows.pop(key, None)
        violation = self._violations.pop(key, None)
        return window is not None or violation is not None

    def rate_keys(self) -> list[str]:
        """Snapshot of every rate key with at least one record."""
        return list(self._windows.keys() | self._violations.keys())

    # --- Capacity pools ---

    def get_pool(self, key: str) -> CapacityState | None:
        return self._pools.get(key)

    def put_pool(self, state: CapacityState) -> None:
        self._pools[state.key] = state

    def drop_pool(self, key: str) -> bool:
        return self._pools.pop(key, None) is not None

    def clear(self) -> None:
        self._windows.clear()
        self._violations.clear()
        self._pools.clear()
