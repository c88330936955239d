"""
Feedline Backend - Unexpected Error Middleware
================================================

What:  Turns any exception no route or handler dealt with into the standard
       {message, status, data} envelope.
How:   Wraps the downstream call; the envelope comes from the same
       detail_from_exception() the request pipeline uses.
When:  Sits inside CORS, request ID and security headers, so the error reply
       carries the same headers as every other response.

Why not only @app.exception_handler(Exception):
    Starlette sends that handler's reply from ServerErrorMiddleware, which
    wraps the whole user middleware stack. The reply would skip the preamble
    and a browser client could not even read it (no CORS headers).
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from feedline.gateway.errors import detail_from_exception, error_response
from feedline.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)


class UnexpectedErrorMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                "[%s] Unexpected error on %s %s: %s",
                request_id_var.get(""),
                request.method,
                request.url.path,
                str(exc),
                exc_info=True,
            )
            return error_response(detail_from_exception(exc))
