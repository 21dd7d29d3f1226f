"""Session capacity endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from session_guard.api.deps import get_rate_limit_service
from session_guard.api.schemas import (
    DecisionResponse,
    SessionOccupancyResponse,
    decision_response,
)
from session_guard.limits.service import RateLimitService

router = APIRouter(tags=["sessions"])

ServiceDep = Annotated[RateLimitService, Depends(get_rate_limit_service)]


@router.post(
    "/sessions/{session_id}/participants/{participant_id}",
    response_model=DecisionResponse,
    responses={429: {"model": DecisionResponse}},
)
async def join_session(
    session_id: str,
    participant_id: str,
    service: ServiceDep,
) -> JSONResponse:
    """Claim a seat in the session. Rejoining is idempotent."""
    return decision_response(service.check_participant_join(session_id, participant_id))


@router.delete(
    "/sessions/{session_id}/participants/{participant_id}",
    status_code=204,
)
async def leave_session(
    session_id: str,
    participant_id: str,
    service: ServiceDep,
) -> Response:
    """Release the participant's seat. No-op if they hold none."""
    service.remove_participant(session_id, participant_id)
    return Response(status_code=204)


@router.get("/sessions/{session_id}")
async def get_session_occupancy(
    session_id: str,
    service: ServiceDep,
) -> SessionOccupancyResponse:
    return SessionOccupancyResponse(
        session_id=session_id,
        occupants=service.session_occupancy(session_id),
        capacity=service.policy.session_capacity,
    )
