"""
Shared API Middleware
======================

HTTP plumbing around the SLA routes: a correlation id per request, one
access log line per request, and JSON bodies for errors.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core import (
    ApplicationException,
    InvalidTimeRangeException,
    ResourceNotFoundException,
    ValidationException,
)
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

# First match wins; anything else is a server error
STATUS_BY_EXCEPTION = (
    (ResourceNotFoundException, status.HTTP_404_NOT_FOUND),
    (ValidationException, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidTimeRangeException, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """Reuses the caller's X-Correlation-ID or mints one, and echoes it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Writes one log line per request with its outcome and duration."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        context = {
            "correlation_id": _correlation_id(request),
            "method": request.method,
            "path": request.url.path,
        }

        try:
            response = await call_next(request)
        except Exception as e:
            context["response_time_ms"] = int((time.perf_counter() - started) * 1000)
            logger.error("Request failed", extra={**context, "error": str(e)})
            raise

        context["response_time_ms"] = int((time.perf_counter() - started) * 1000)
        logger.info("Request completed", extra={**context, "status_code": response.status_code})
        return response


def status_for(exc: ApplicationException) -> int:
    for exc_type, status_code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """Turn an engine error into ``{"detail", "correlation_id"}`` with a mapped status."""
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(
            "Application error",
            extra={
                "correlation_id": _correlation_id(request),
                "path": request.url.path,
                "error_type": type(exc).__name__,
                "error_message": exc.message,
                "details": exc.details,
            }
        )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "correlation_id": _correlation_id(request)},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler; the error text stays in the logs, not the response."""
    logger.exception(
        "Unhandled exception",
        extra={
            "correlation_id": _correlation_id(request),
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
        }
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "correlation_id": _correlation_id(request),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )
