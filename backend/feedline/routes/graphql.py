"""
Feedline Backend - GraphQL Route
==================================

What:  The single operation endpoint. Every domain operation, public or
       authenticated, multiplexes through GET/POST /graphql.
How:   The handler is a thin adapter; all work happens in the injected
       RequestPipeline (app.state.pipeline).
"""

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from feedline.pipeline import RequestPipeline

router = APIRouter(tags=["GraphQL"])


def get_pipeline(request: Request) -> RequestPipeline:
    return request.app.state.pipeline


@router.api_route(
    "/graphql",
    methods=["GET", "POST"],
    summary="Execute a GraphQL operation",
    description=(
        "Accepts a query or mutation as JSON, as query-string parameters (queries only), "
        "or as multipart form fields next to an optional `image` file (PNG or JPEG). "
        "Failures are returned as {message, status, data}."
    ),
)
async def graphql_endpoint(
    request: Request,
    pipeline: RequestPipeline = Depends(get_pipeline),
) -> Response:
    return await pipeline.handle(request)
