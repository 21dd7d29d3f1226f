"""Fixed-ceiling membership gate for shared sessions."""

from __future__ import annotations

import structlog

from session_guard.limits.decision import Decision
from session_guard.limits.store import CapacityState, StateStore

logger = structlog.get_logger()


class CapacityGate:
    """At most ``capacity_limit`` concurrent members per pool.

    No time dimension and no escalation: a seat is held until the member
    leaves or the pool is cleared.
    """

    def __init__(self, store: StateStore) -> None:
        self._store = store

    def join(self, pool_key: str, member_id: str, capacity_limit: int) -> Decision:
        """Admit *member_id* to *pool_key* if a seat is free.

        Rejoining is idempotent: an existing member is always admitted
        and never counted twice.
        """
        pool = self._store.get_pool(pool_key)
        if pool is None:
            pool = CapacityState(key=pool_key)

        if member_id in pool.occupants:
            return Decision.allow(remaining=_seats_left(pool, capacity_limit))

        if len(pool.occupants) >= capacity_limit:
            logger.info(
                "session_capacity_reached",
                pool_key=pool_key,
                capacity=capacity_limit,
            )
            return Decision.deny(
                reason=(
                    "Session has reached maximum capacity "
                    f"({capacity_limit} participants)."
                ),
            )

        pool.occupants.add(member_id)
        self._store.put_pool(pool)
        return Decision.allow(remaining=_seats_left(pool, capacity_limit))

    def leave(self, pool_key: str, member_id: str) -> None:
        """Release the seat held by *member_id*. No-op if absent."""
        pool = self._store.get_pool(pool_key)
        if pool is None or member_id not in pool.occupants:
            return

        pool.occupants.discard(member_id)
        if pool.occupants:
            self._store.put_pool(pool)
        else:
            self._store.drop_pool(pool_key)

    def clear(self, pool_key: str) -> bool:
        """Drop the whole pool. Returns True if it existed."""
        return self._store.drop_pool(pool_key)

    def occupancy(self, pool_key: str) -> int:
        pool = self._store.get_pool(pool_key)
        return 0 if pool is None else len(pool.occupants)


def _seats_left(pool: CapacityState, capacity_limit: int) -> int:
    return max(0, capacity_limit - len(pool.occupants))
