"""
Feedline Backend - Access Log Middleware
==========================================

What:  One log line per HTTP request on the `feedline.access` logger.
How:   Measures time around the downstream call and logs method, path,
       status, duration, request ID and client address. 5xx responses log
       at ERROR, 4xx at WARNING, everything else at INFO.

Request bodies (operation documents, uploads) and Authorization headers
are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from feedline.middleware.request_id import request_id_var

logger = logging.getLogger("feedline.access")

# Why: health checks hit /health every few seconds; logging them buries real traffic
UNLOGGED_PATHS = frozenset({"/health"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in UNLOGGED_PATHS:
            return await call_next(request)

        # Why time.perf_counter: monotonic and higher resolution than time.time()
        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        rid = request_id_var.get("")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        # Why by status class: severity-based alerting (5xx paged, 4xx reviewed)
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
