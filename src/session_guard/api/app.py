"""FastAPI application with lifespan management."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from session_guard.api.middleware import RequestLoggingMiddleware
from session_guard.api.routes.admin import router as admin_router
from session_guard.api.routes.participants import router as participants_router
from session_guard.api.routes.sessions import router as sessions_router
from session_guard.config import settings
from session_guard.limits.service import get_rate_limit_service_instance
from session_guard.logging_config import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown.

    Startup:
        - Take the process-wide RateLimitService from the shared accessor,
          so code outside the request path sees the same state.
        - Start its reaper task.
    Shutdown:
        - Close the service (awaits the reaper, drops all state) and
          forget the cached instance.
    """
    configure_logging(
        environment=str(settings.environment),
        log_level=settings.log_level,
    )
    service = get_rate_limit_service_instance()
    service.start()
    app.state.rate_limit_service = service

    logger.info(
        "app_started",
        environment=str(settings.environment),
        rate_limit_enabled=service.policy.enabled,
    )
    try:
        yield
    finally:
        await service.aclose()
        get_rate_limit_service_instance.cache_clear()
        logger.info("app_stopped")


app = FastAPI(
    title="Session Guard",
    description="Rate limits and session capacity for collaborative brainstorming",
    version="0.1.0",
    lifespan=lifespan,
    debug=settings.is_dev,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allowed_methods,
    allow_headers=settings.cors_allowed_headers,
)


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness check. The engine has no external dependencies to probe."""
    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "timestamp": datetime.now(UTC).isoformat(timespec="seconds"),
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Catch-all handler for unhandled exceptions."""
    logger.error("unhandled_exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(participants_router, prefix="/api/v1")
app.include_router(sessions_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
