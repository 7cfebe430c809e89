"""
Zoo Registry API: Access Log Middleware
========================================

What:  One log line per HTTP request: method, path, status, duration,
       request ID, and the authenticated user id when there is one.
How:   Times the downstream call and picks the level from the status class.
Who:   Applied to every request, inside RequestIDMiddleware.

What is logged vs what is NOT logged:
    ✅ method, path, status, duration, client IP, request ID, user id
    ❌ request bodies (passwords), Authorization header (tokens), query strings
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from zoo_api.middleware.request_id import request_id_var

logger = logging.getLogger("zoo_api.access")

# Probe traffic is not logged
_QUIET_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request on completion at INFO (2xx/3xx), WARNING (4xx) or ERROR (5xx)."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        # Set by get_current_user on authenticated routes
        user_id = getattr(request.state, "user_id", None) or "-"
        status = response.status_code

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user_id,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "user_id": user_id,
            },
        )
        return response
