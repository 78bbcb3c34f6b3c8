# src/dontdrop/main.py

"""Main FastAPI application for the Don't Drop leaderboard."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from .api import leaderboard, ws
from .api.deps import get_leaderboard_service
from .config import settings
from .db.session import create_tables, engine
from .exceptions import (
    AuthenticationError,
    DontDropError,
    PermissionDeniedError,
    StoreUnavailableError,
    ValidationError,
)
from .middleware.logging import RequestLoggingMiddleware
from .services.announcements import AsyncioAnnouncementScheduler, run_weekly_digest
from .services.leaderboard_service import LeaderboardService
from .store.sql import SqlRankingStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup and shutdown events."""
    logging.basicConfig(level=settings.log_level)
    service = get_leaderboard_service()

    if settings.create_tables and isinstance(service.store, SqlRankingStore):
        await create_tables(engine)

    scheduler = service.scheduler
    if not isinstance(scheduler, AsyncioAnnouncementScheduler):
        scheduler = None

    if settings.weekly_digest_enabled and scheduler is not None:
        scheduler.start_weekly_digest(lambda: run_weekly_digest(service))
        logger.info("Weekly digest job enabled")

    yield

    # Let queued announcements finish, then release database connections.
    if scheduler is not None:
        await scheduler.stop()
    await engine.dispose()


app = FastAPI(title="Don't Drop Leaderboard API", lifespan=lifespan)

app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Global Exception Handlers
# =============================================================================


def _error_response(status_code: int, exc: DontDropError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error_type": type(exc).__name__},
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle all validation errors -> 422."""
    logger.warning("Validation error: %s", exc.message, extra=exc.details)
    return _error_response(422, exc)


@app.exception_handler(AuthenticationError)
async def authentication_error_handler(
    request: Request, exc: AuthenticationError
) -> JSONResponse:
    """Requests without a platform identity -> 401."""
    logger.warning("Unauthenticated request: %s", exc.message, extra=exc.details)
    return _error_response(401, exc)


@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(
    request: Request, exc: PermissionDeniedError
) -> JSONResponse:
    """Admin actions without a valid token -> 403."""
    logger.warning("Permission denied: %s", exc.message, extra=exc.details)
    return _error_response(403, exc)


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(
    request: Request, exc: StoreUnavailableError
) -> JSONResponse:
    """Ranking store failures -> 503, so clients know a retry may succeed."""
    logger.error("Store unavailable: %s", exc.message, extra=exc.details)
    return _error_response(503, exc)


@app.exception_handler(DontDropError)
async def dontdrop_error_handler(
    request: Request, exc: DontDropError
) -> JSONResponse:
    """Catch-all for any other Don't Drop errors -> 500."""
    logger.error("Don't Drop error: %s", exc.message, extra=exc.details, exc_info=True)
    return _error_response(500, exc)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal server error occurred"},
    )


# Include routers into the main application
app.include_router(leaderboard.router)
app.include_router(ws.router)


@app.get("/", tags=["Root"])
async def read_root() -> dict[str, str]:
    """Provides a welcome message."""
    return {"message": "Welcome to the Don't Drop leaderboard API"}


@app.get("/health", tags=["Health"])
async def health_check(
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> dict[str, str]:
    """Health check endpoint; 503 when the ranking store does not answer."""
    await service.store.ping()
    return {"status": "healthy"}
