"""Fixtures for HTTP adapter tests."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from session_guard.api.app import app
from session_guard.api.deps import get_rate_limit_service
from session_guard.config import Settings, get_settings
from session_guard.limits.service import RateLimitService

ADMIN_KEY = "test-admin-key"


@pytest.fixture()
async def client(service: RateLimitService) -> AsyncGenerator[AsyncClient]:
    """AsyncClient wired to an isolated service with a virtual clock."""
    app.dependency_overrides[get_rate_limit_service] = lambda: service
    app.dependency_overrides[get_settings] = lambda: Settings(
        admin_api_key=ADMIN_KEY,  # type: ignore[arg-type]
        _env_file=None,
    )
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Key": ADMIN_KEY}
