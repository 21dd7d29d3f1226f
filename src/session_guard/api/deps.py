"""FastAPI dependency injection."""

from __future__ import annotations

import hmac
from typing import cast

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import APIKeyHeader

from session_guard.config import Settings, get_settings
from session_guard.limits.service import RateLimitService

__all__ = ["get_rate_limit_service", "require_admin"]

admin_key_header = APIKeyHeader(name="X-Admin-Key", auto_error=False)

_get_settings = Depends(get_settings)


async def get_rate_limit_service(request: Request) -> RateLimitService:
    """Retrieve RateLimitService from app state.

    Initialized during lifespan startup.
    """
    return cast(RateLimitService, request.app.state.rate_limit_service)


async def require_admin(
    api_key: str | None = Security(admin_key_header),
    settings: Settings = _get_settings,
) -> None:
    """Guard administrative routes with the configured admin key.

    Raises:
        HTTPException 403: admin key not configured, missing, or wrong.
    """
    if settings.admin_api_key is None:
        raise HTTPException(status_code=403, detail="Admin API disabled")

    expected = settings.admin_api_key.get_secret_value()
    if api_key is None or not hmac.compare_digest(api_key, expected):
        raise HTTPException(status_code=403, detail="Invalid admin key")
