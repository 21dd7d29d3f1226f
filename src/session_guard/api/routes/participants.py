"""Idea submission rate limit endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from session_guard.api.deps import get_rate_limit_service
from session_guard.api.schemas import DecisionResponse, decision_response
from session_guard.limits.service import RateLimitService

router = APIRouter(tags=["participants"])

ServiceDep = Annotated[RateLimitService, Depends(get_rate_limit_service)]


@router.post(
    "/participants/{participant_id}/ideas/check",
    response_model=DecisionResponse,
    responses={429: {"model": DecisionResponse}},
)
async def check_idea_submission(
    participant_id: str,
    service: ServiceDep,
) -> JSONResponse:
    """Consume one idea submission from the participant's quota.

    Call before persisting the idea; a 429 means the idea must be
    rejected. ``Retry-After`` carries the wait in seconds.
    """
    return decision_response(service.check_idea_submission(participant_id))


@router.get(
    "/participants/{participant_id}/status",
    response_model=DecisionResponse,
)
async def get_participant_status(
    participant_id: str,
    service: ServiceDep,
) -> JSONResponse:
    """Remaining quota without consuming any. Always 200."""
    decision = service.get_status(participant_id)
    return JSONResponse(status_code=200, content=decision.to_payload())
