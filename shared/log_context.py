"""
Request logging middleware.

Provides:
- a request ID per request, bound into structlog contextvars so every log
  line emitted while handling the request carries it
- one `request_completed` line per request with status and timing
- the request ID echoed back in the X-Request-ID response header
"""

from __future__ import annotations

import time
import uuid

import structlog
from fastapi import FastAPI, Request

from shared.logging import get_logger

log = get_logger("auth.request")


def generate_request_id() -> str:
    """Generate a unique request ID for correlation."""
    return f"req_{uuid.uuid4().hex[:12]}"


def log_request_end(
    method: str, path: str, status_code: int, duration_ms: int
) -> None:
    """Log the end of a request; level follows the status class."""
    if status_code >= 500:
        log_fn = log.error
    elif status_code >= 400:
        log_fn = log.warning
    else:
        log_fn = log.info

    log_fn(
        "request_completed",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
    )


def setup_logging_middleware(app: FastAPI) -> None:
    """Register the request logging middleware on *app*."""

    @app.middleware("http")
    async def request_logging(request: Request, call_next):
        started = time.perf_counter()
        request_id = generate_request_id()
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            user_agent=request.headers.get("User-Agent", "")[:100],
        )

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            # Unhandled errors leave status_code at 500; the server error
            # handler attaches X-Request-ID to that response
            duration_ms = int((time.perf_counter() - started) * 1000)
            log_request_end(
                request.method, request.url.path, status_code, duration_ms
            )
