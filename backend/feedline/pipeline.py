"""
Feedline Backend - Request Pipeline
=====================================

What:  Runs one /graphql request through its stages in a fixed order and
       produces exactly one response.
How:   Every collaborator (upload acceptor, auth gate, execution gateway,
       data store session factory) is injected at construction, so the
       pipeline holds no process-wide state and tests can swap any of them.

Stage sequence:
    PREAMBLE → UPLOADING → AUTHENTICATING → EXECUTING → RESPONDING → DONE

    The preamble (security headers, compression, request id, access log,
    CORS) is the ASGI middleware stack configured in main.py. Any stage may
    jump straight to RESPONDING with an application or HTTP error; that
    response comes from the same error normalizer as execution failures.
    Exceptions the pipeline does not recognise propagate to the
    application-level safety net. Nothing is retried here.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.datastructures import FormData
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response

from feedline.exceptions import FeedlineError
from feedline.gateway.context import ExecutionContext
from feedline.gateway.errors import detail_from_exception, error_response, render_result
from feedline.gateway.executor import ExecutionGateway
from feedline.gateway.graphiql import accepts_html, render_graphiql
from feedline.gateway.results import ExecutionResult
from feedline.middleware.request_id import request_id_var
from feedline.schemas.pipeline import Identity, UploadResult
from feedline.services.auth_service import AuthGate
from feedline.services.upload_service import UploadAcceptor

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


class Stage(str, Enum):
    PREAMBLE = "preamble"
    UPLOADING = "uploading"
    AUTHENTICATING = "authenticating"
    EXECUTING = "executing"
    RESPONDING = "responding"
    DONE = "done"


@dataclass
class RequestContext:
    """Per-request state. Created and discarded by RequestPipeline.handle()."""

    request: Request
    stage: Stage = Stage.PREAMBLE
    form: Optional[FormData] = None
    upload: Optional[UploadResult] = None
    identity: Optional[Identity] = None
    result: Optional[ExecutionResult] = None

    def advance(self, stage: Stage) -> None:
        logger.debug("[%s] %s -> %s", request_id_var.get(""), self.stage.value, stage.value)
        self.stage = stage


async def read_form(request: Request) -> Optional[FormData]:
    """Parse the body as a form when it is one (uploads travel this way)."""
    if request.method != "POST":
        return None
    content_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    if content_type not in FORM_CONTENT_TYPES:
        return None
    return await request.form()


class RequestPipeline:
    def __init__(
        self,
        upload_acceptor: UploadAcceptor,
        auth_gate: AuthGate,
        gateway: ExecutionGateway,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        graphiql_enabled: bool = True,
    ):
        self.upload_acceptor = upload_acceptor
        self.auth_gate = auth_gate
        self.gateway = gateway
        self.session_factory = session_factory
        self.graphiql_enabled = graphiql_enabled

    async def handle(self, request: Request) -> Response:
        ctx = RequestContext(request=request)
        try:
            response = await self._run(ctx)
        except (FeedlineError, StarletteHTTPException) as exc:
            detail = detail_from_exception(exc)
            log = logger.error if detail.status_code >= 500 else logger.warning
            log(
                "[%s] Request stopped while %s: %s",
                request_id_var.get(""),
                ctx.stage.value,
                detail.message,
            )
            ctx.advance(Stage.RESPONDING)
            response = error_response(detail)
        finally:
            if ctx.form is not None:
                await ctx.form.close()

        ctx.advance(Stage.DONE)
        return response

    async def _run(self, ctx: RequestContext) -> Response:
        request = ctx.request

        if self._wants_graphiql(request):
            ctx.advance(Stage.RESPONDING)
            return HTMLResponse(render_graphiql(request.url.path))

        ctx.form = await read_form(request)

        ctx.advance(Stage.UPLOADING)
        ctx.upload = await self.upload_acceptor.accept_from_form(ctx.form)

        ctx.advance(Stage.AUTHENTICATING)
        ctx.identity = self.auth_gate.identify(request.headers.get("Authorization"))

        ctx.advance(Stage.EXECUTING)
        execution_context = ExecutionContext(
            identity=ctx.identity,
            upload=ctx.upload,
            request=request,
            session_factory=self.session_factory,
        )
        ctx.result = await self.gateway.execute(request, execution_context, form=ctx.form)

        ctx.advance(Stage.RESPONDING)
        return render_result(ctx.result)

    def _wants_graphiql(self, request: Request) -> bool:
        return (
            self.graphiql_enabled
            and request.method == "GET"
            and "raw" not in request.query_params
            and accepts_html(request.headers.get("accept", ""))
        )
