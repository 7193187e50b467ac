"""FastAPI middleware for request logging and log context."""

import time
import uuid
from typing import Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from cafe_ops.logging_config import bind_context, clear_context, get_logger

logger = get_logger(__name__)

# Path segment -> log context key for the id that follows it
PATH_CONTEXT_KEYS = {
    "purchases": "purchase_id",
    "check-ins": "check_in_id",
    "guests": "guest_id",
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with a correlation id.

    The id is bound to the log context for the request, logged with the
    method, path, status and duration, and echoed as ``X-Request-ID``.
    An incoming ``X-Request-ID`` header is reused.
    """

    def __init__(self, app: ASGIApp, include_request_details: bool = True):
        super().__init__(app)
        self.include_request_details = include_request_details

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        bind_context(request_id=request_id)

        details = {}
        if self.include_request_details:
            details = {
                "query_params": str(request.query_params) if request.query_params else None,
                "client_host": request.client.host if request.client else "unknown",
                "user_id": request.headers.get("x-user-id"),
            }
        logger.info("request_started", method=request.method, path=request.url.path, **details)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                error=str(exc),
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise
        finally:
            clear_context()

        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            request_id=request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response


def path_context(path: str) -> dict:
    """Ids named by the path, e.g. /check-ins/abc/pause -> {"check_in_id": "abc"}."""
    parts = [part for part in path.split("/") if part]
    context = {}
    for index, part in enumerate(parts[:-1]):
        key: Optional[str] = PATH_CONTEXT_KEYS.get(part)
        if key is not None:
            context[key] = parts[index + 1]
    return context


class ContextMiddleware(BaseHTTPMiddleware):
    """Binds purchase, check-in and guest ids from the path to the log context."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = path_context(request.url.path)
        if context:
            bind_context(**context)
        return await call_next(request)
