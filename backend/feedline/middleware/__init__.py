# Middleware package init
"""
Feedline Backend - Middleware Package
=======================================

The request preamble, applied to every request before any route runs.

Middleware Chain (execution order):
    Request → [Security Headers] → [Request ID] → [Access Log] → [CORS]
            → [Unexpected Error] → [GZip] → Route

    Responses travel back through the same chain in reverse, so the access
    log sees the final status code and the security headers are applied to
    every response, including CORS preflight answers and error envelopes.

Why GZip is innermost:
    The BaseHTTPMiddleware layers re-stream response bodies, and GZip
    compresses any streamed body regardless of its minimum size. Wrapping
    the routes directly keeps small responses uncompressed.
"""
