"""Shared pytest fixtures."""

from collections.abc import Iterator

import pytest

from session_guard.clock import ManualClock
from session_guard.limits.service import RateLimitPolicy, RateLimitService

START_MS = 1_000_000


@pytest.fixture()
def clock() -> ManualClock:
    """Virtual clock; tests advance it instead of sleeping."""
    return ManualClock(start_ms=START_MS)


@pytest.fixture()
def service(clock: ManualClock) -> Iterator[RateLimitService]:
    """Service with the default policy, destroyed after each test."""
    svc = RateLimitService(RateLimitPolicy(), clock=clock)
    yield svc
    svc.destroy()
