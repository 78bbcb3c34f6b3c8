# src/dontdrop/middleware/logging.py

"""Request/response logging middleware for the Don't Drop API."""

import logging
import time
import uuid
from collections.abc import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("dontdrop.api")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each HTTP request with the calling player and its outcome.

    A caller-supplied X-Request-ID is reused so a retried submission can be
    traced across attempts; otherwise a short id is generated. The id is
    echoed back on the response.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex[:8]
        player_id = request.headers.get("X-Player-Id", "-")
        context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "player_id": player_id,
        }
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.error(
                "[%s] %s %s player=%s -> ERROR (%.2fms)",
                request_id,
                request.method,
                request.url.path,
                player_id,
                elapsed_ms,
                extra={**context, "error": str(e), "duration_ms": round(elapsed_ms, 2)},
                exc_info=True,
            )
            raise

        elapsed_ms = (time.perf_counter() - started) * 1000
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            "[%s] %s %s player=%s -> %d (%.2fms)",
            request_id,
            request.method,
            request.url.path,
            player_id,
            response.status_code,
            elapsed_ms,
            extra={
                **context,
                "status_code": response.status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        response.headers[REQUEST_ID_HEADER] = request_id
        return response  # type: ignore[no-any-return]
