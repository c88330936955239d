"""
Feedline Backend - FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds every collaborator (engine, image storage, upload
       acceptor, auth gate, execution gateway), wires them into a
       RequestPipeline, registers the middleware preamble, the safety-net
       exception handlers and the routes.
Who:   Called by uvicorn (feedline.main:app) and by tests with their own
       settings, engine, schema or clock.

Lifecycle:
    Startup:
    1. Initialize logging
    2. Warn about insecure configuration
    3. Verify the data store connection (failure aborts startup, so the
       listening socket is never opened)

    Shutdown:
    1. Dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from graphql import GraphQLSchema
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.exceptions import HTTPException as StarletteHTTPException

from feedline import __version__
from feedline.config import Settings, settings
from feedline.database import (
    create_engine,
    create_session_factory,
    dispose_engine,
    verify_connection,
)
from feedline.exceptions import DatabaseError, FeedlineError
from feedline.gateway import schema as default_schema
from feedline.gateway.errors import detail_from_exception, error_response
from feedline.gateway.executor import ExecutionGateway
from feedline.middleware.error_boundary import UnexpectedErrorMiddleware
from feedline.middleware.logging import RequestLoggingMiddleware
from feedline.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from feedline.middleware.security_headers import SecurityHeadersMiddleware
from feedline.pipeline import RequestPipeline
from feedline.routes import graphql, health, images
from feedline.services.auth_service import AuthGate
from feedline.services.upload_service import ImageStorage, UploadAcceptor, utc_timestamp

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the whole process: one stdout handler on the root
    logger, with chatty third-party loggers raised to WARNING.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Why: these log every statement / request / multipart part at INFO or DEBUG

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    app_settings: Settings = app.state.settings
    engine: AsyncEngine = app.state.engine

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(app_settings.log_level)
    logger.info("Feedline backend starting up...")

    try:
        app_settings.validate_required_for_production()
    except ValueError as e:
        logger.warning("%s", str(e))

    # Why fail fast: serving requests without a data store only produces 500s
    try:
        await verify_connection(engine)
    except DatabaseError:
        logger.critical("Startup aborted: the data store is unreachable.")
        await dispose_engine(engine)
        raise

    logger.info(
        "Server listening on http://%s:%d", app_settings.backend_host, app_settings.backend_port
    )

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Feedline backend shutting down...")
    await dispose_engine(engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Safety-Net Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Catch everything that escaped the request pipeline (or happened on a
    non-GraphQL route) and answer with the same {message, status, data}
    envelope the GraphQL endpoint uses.

    Unexpected exceptions normally stop at UnexpectedErrorMiddleware; the
    Exception handler here only sees failures of the preamble itself.
    Unexpected exceptions get a generic message; the traceback is logged
    server-side only.
    """

    @app.exception_handler(FeedlineError)
    async def handle_feedline_error(request: Request, exc: FeedlineError):
        rid = request_id_var.get("")
        detail = detail_from_exception(exc)
        if detail.status_code >= 500:
            logger.error("[%s] %s | Context: %s", rid, exc.message, exc.context)
        else:
            logger.warning("[%s] %s", rid, exc.message)
        return error_response(detail)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        response = error_response(detail_from_exception(exc))
        if exc.headers:
            response.headers.update(exc.headers)
        return response

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return error_response(detail_from_exception(exc))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    app_settings: Optional[Settings] = None,
    *,
    engine: Optional[AsyncEngine] = None,
    schema: Optional[GraphQLSchema] = None,
    root_value: Any = None,
    clock: Optional[Callable[[], str]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: Configuration; defaults to the module-level settings.
        engine:       Data store engine; built from the settings when omitted.
        schema:       Executable GraphQL schema; the bundled default when omitted.
        root_value:   Root resolvers for `schema`.
        clock:        Timestamp source for stored upload names.
    """
    app_settings = app_settings or settings
    engine = engine or create_engine(app_settings)
    if schema is None:
        schema, root_value = default_schema.schema, default_schema.root_value

    storage = ImageStorage(app_settings.storage_root)
    pipeline = RequestPipeline(
        upload_acceptor=UploadAcceptor(
            storage,
            max_upload_size=app_settings.max_upload_size,
            clock=clock or utc_timestamp,
        ),
        auth_gate=AuthGate(app_settings.jwt_secret, app_settings.jwt_algorithm),
        gateway=ExecutionGateway(schema, root_value),
        session_factory=create_session_factory(engine),
        graphiql_enabled=app_settings.graphiql_enabled,
    )

    app = FastAPI(
        title="Feedline API",
        description="HTTP entry point of the Feedline social backend: one GraphQL endpoint with image uploads.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.engine = engine
    app.state.storage = storage
    app.state.pipeline = pipeline

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first. Execution order:
    # SecurityHeaders → RequestID → Logging → CORS → UnexpectedError → GZip

    # GZip compression: reduces response size for large payloads
    # Why innermost: BaseHTTPMiddleware layers re-stream the body, and GZip
    # compresses every streamed response regardless of minimum_size.
    # Why minimum_size=500: Don't compress small responses (overhead > savings)
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # Unexpected errors become the error envelope inside the preamble
    app.add_middleware(UnexpectedErrorMiddleware)

    # CORS: handles preflight OPTIONS requests and adds CORS headers
    # Why credentials only for explicit origins: browsers reject "*" with credentials
    origins = app_settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    # Request logging: logs method, path, status, duration
    app.add_middleware(RequestLoggingMiddleware)

    # Request ID: generates unique ID for each request
    app.add_middleware(RequestIDMiddleware)

    # Security headers: first to execute, so every response carries them
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(graphql.router)
    app.include_router(images.router)
    app.include_router(health.router)

    return app


app = create_app()
