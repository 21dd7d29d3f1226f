"""Administrative endpoints: un-stick participants, close sessions."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response

from session_guard.api.deps import get_rate_limit_service, require_admin
from session_guard.limits.service import RateLimitService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(require_admin)],
)

ServiceDep = Annotated[RateLimitService, Depends(get_rate_limit_service)]


@router.post("/participants/{participant_id}/reset", status_code=204)
async def reset_participant(
    participant_id: str,
    service: ServiceDep,
) -> Response:
    """Clear window, violations and any block for the participant."""
    service.reset(participant_id)
    return Response(status_code=204)


@router.delete("/sessions/{session_id}", status_code=204)
async def clear_session(
    session_id: str,
    service: ServiceDep,
) -> Response:
    """Drop every seat in the session (e.g. when it ends)."""
    service.clear_session(session_id)
    return Response(status_code=204)
