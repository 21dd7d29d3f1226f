"""Request/response schemas for the API layer."""

from __future__ import annotations

import math

from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from session_guard.limits.decision import Decision

# --- Decision ---


class DecisionResponse(BaseModel):
    """Body of every check endpoint (200 when allowed, 429 when not).

    ``retryAfter`` and ``reason`` are present only on rejections.

    Example::

        {
            "allowed": false,
            "remaining": 0,
            "resetIn": 42000,
            "retryAfter": 42000,
            "reason": "Rate limit exceeded. Maximum 6 ideas per minute."
        }
    """

    allowed: bool
    remaining: int = Field(description="Quota or seats left after this call.")
    resetIn: int = Field(description="Milliseconds until the window resets.")
    retryAfter: int | None = Field(
        default=None, description="Milliseconds until a retry may succeed."
    )
    reason: str | None = None


def decision_response(decision: Decision) -> JSONResponse:
    """Render a Decision, adding ``Retry-After`` (seconds) on rejections."""
    if decision.allowed:
        return JSONResponse(status_code=200, content=decision.to_payload())

    headers: dict[str, str] = {}
    if decision.retry_after_ms is not None:
        seconds = max(1, math.ceil(decision.retry_after_ms / 1000))
        headers["Retry-After"] = str(seconds)
    return JSONResponse(
        status_code=429,
        content=decision.to_payload(),
        headers=headers,
    )


# --- Sessions ---


class SessionOccupancyResponse(BaseModel):
    """Response for ``GET /sessions/{session_id}``."""

    session_id: str
    occupants: int = Field(description="Participants currently holding a seat.")
    capacity: int = Field(description="Maximum concurrent participants.")
