"""Rate limiting, session capacity and violation escalation engine."""

from session_guard.limits.decision import Decision
from session_guard.limits.service import (
    RateLimitPolicy,
    RateLimitService,
    get_rate_limit_service_instance,
)

__all__ = [
    "Decision",
    "RateLimitPolicy",
    "RateLimitService",
    "get_rate_limit_service_instance",
]
