"""
Request logging middleware.

Logs every HTTP request with its outcome and duration.
"""

import logging
import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log HTTP requests with timing information.

    Every response carries ``X-Request-ID`` (echoed from the request or
    generated) and ``X-Process-Time`` in milliseconds.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        logger_instance: logging.Logger | None = None,
        skip_paths: set[str] | None = None,
    ) -> None:
        super().__init__(app)
        self._logger = logger_instance or logger
        self._skip_paths = skip_paths if skip_paths is not None else {"/health"}

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.url.path in self._skip_paths:
            return await call_next(request)

        start_time = time.perf_counter()
        method = request.method
        path = request.url.path
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._logger.error(
                f"{method} {path} failed: {e}",
                extra={
                    "event": "request_failed",
                    "method": method,
                    "path": path,
                    "request_id": request_id,
                    "duration_ms": round(duration_ms, 2),
                },
                exc_info=True,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        self._logger.info(
            f"{method} {path} -> {response.status_code} ({duration_ms:.1f}ms)",
            extra={
                "event": "request_completed",
                "method": method,
                "path": path,
                "client_ip": request.client.host if request.client else "unknown",
                "request_id": request_id,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )

        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"
        response.headers["X-Request-ID"] = request_id
        return response
