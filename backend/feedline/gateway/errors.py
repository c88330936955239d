"""
Feedline Backend - Error Normalizer
=====================================

What:  The single place where failures become HTTP status codes and bodies.
How:   normalize_error() is a pure function over one GraphQLError:
         - no original cause (syntax/validation/transport error produced by
           the engine itself)  → returned unchanged
         - original cause       → ErrorDetail(message, status_code, payload)
       detail_from_exception() does the same for exceptions caught outside
       GraphQL execution (the safety net). The render_* functions are the
       transport adapter that turns either into a JSONResponse.

Envelope sent for every normalized failure:
    {"message": "Invalid input", "status": 422, "data": {"field": "title"}}
"""

from typing import List, Union

from graphql import GraphQLError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from feedline.exceptions import FeedlineError
from feedline.gateway.results import ExecutionResult, Failure, Success
from feedline.schemas.pipeline import ErrorDetail

GENERIC_MESSAGE = "An error occurred"
UNEXPECTED_MESSAGE = "An unexpected error occurred. Please try again or contact support."


def status_from(value: object) -> int:
    if isinstance(value, int) and not isinstance(value, bool) and 400 <= value <= 599:
        return value
    return 500


def detail_from_cause(message: str, cause: BaseException) -> ErrorDetail:
    """
    Build the envelope triple from an error's cause.

    Status and payload are read the same way for every cause, so a
    collaborator exception carrying `status_code` / `data` keeps them
    whether it surfaced through GraphQL execution or escaped a stage.
    """
    return ErrorDetail(
        message=message or GENERIC_MESSAGE,
        status_code=status_from(getattr(cause, "status_code", None)),
        payload=getattr(cause, "data", None),
    )


def normalize_error(error: GraphQLError) -> Union[ErrorDetail, GraphQLError]:
    cause = error.original_error
    if cause is None:
        return error
    return detail_from_cause(error.message, cause)


def detail_from_exception(exc: BaseException) -> ErrorDetail:
    """Normalize an exception that escaped a pipeline stage."""
    if isinstance(exc, FeedlineError):
        message = exc.message
    elif isinstance(exc, StarletteHTTPException):
        message = str(exc.detail) if exc.detail else ""
    else:
        # Why: arbitrary exception text may carry internals (SQL, paths, keys)
        message = UNEXPECTED_MESSAGE
    return detail_from_cause(message, exc)


def error_response(detail: ErrorDetail) -> JSONResponse:
    return JSONResponse(status_code=detail.status_code, content=detail.to_envelope())


def render_failure(failure: Failure) -> JSONResponse:
    # The first error decides the response.
    normalized = normalize_error(failure.cause)
    if isinstance(normalized, ErrorDetail):
        return error_response(normalized)

    passthrough: List[dict] = [
        error.formatted for error in failure.errors if error.original_error is None
    ]
    return JSONResponse(status_code=failure.status_code, content={"errors": passthrough})


def render_result(result: ExecutionResult) -> JSONResponse:
    if isinstance(result, Success):
        return JSONResponse(content={"data": result.data})
    return render_failure(result)
