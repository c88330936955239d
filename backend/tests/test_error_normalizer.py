"""
Feedline Backend - Error Normalizer Unit Tests
================================================

normalize_error / detail_from_exception are pure functions; the render_*
helpers are the transport adapter. Envelope keys are always a subset of
{message, status, data}.
"""

import json

import pytest
from graphql import GraphQLError
from starlette.exceptions import HTTPException as StarletteHTTPException

from feedline.exceptions import (
    AuthorizationError,
    DatabaseError,
    FeedlineError,
    ValidationError,
)
from feedline.gateway.errors import (
    GENERIC_MESSAGE,
    UNEXPECTED_MESSAGE,
    detail_from_exception,
    normalize_error,
    render_failure,
    render_result,
)
from feedline.gateway.results import Failure, Success
from feedline.schemas.pipeline import ErrorDetail

ENVELOPE_KEYS = {"message", "status", "data"}


def wrapped(cause: Exception, message: str = None) -> GraphQLError:
    return GraphQLError(message if message is not None else str(cause), original_error=cause)


def body_of(response):
    return json.loads(response.body)


class TestNormalizeError:
    def test_application_error_is_unwrapped(self):
        cause = FeedlineError("Invalid input", status_code=422, data={"field": "title"})

        detail = normalize_error(wrapped(cause))

        assert detail == ErrorDetail(
            message="Invalid input", status_code=422, payload={"field": "title"}
        )
        assert detail.to_envelope() == {
            "message": "Invalid input",
            "status": 422,
            "data": {"field": "title"},
        }

    def test_error_without_cause_passes_through_unchanged(self):
        error = GraphQLError("Cannot query field 'nope' on type 'Query'.")
        assert normalize_error(error) is error

    def test_missing_status_falls_back_to_500(self):
        detail = normalize_error(wrapped(RuntimeError("boom")))
        assert detail.status_code == 500
        assert detail.message == "boom"
        assert detail.payload is None

    def test_missing_message_falls_back_to_generic(self):
        detail = normalize_error(wrapped(RuntimeError(), message=""))
        assert detail.message == GENERIC_MESSAGE

    @pytest.mark.parametrize("bogus", ["422", 200, 999, True, None])
    def test_unusable_status_codes_become_500(self, bogus):
        cause = RuntimeError("odd")
        cause.status_code = bogus
        assert normalize_error(wrapped(cause)).status_code == 500

    def test_subclass_defaults(self):
        assert normalize_error(wrapped(AuthorizationError())).status_code == 401
        detail = normalize_error(wrapped(ValidationError("Bad title", field="title")))
        assert detail.status_code == 422
        assert detail.payload == {"field": "title"}

    def test_envelope_omits_absent_data(self):
        envelope = normalize_error(wrapped(AuthorizationError())).to_envelope()
        assert envelope == {"message": "Not authenticated.", "status": 401}


class TestDetailFromException:
    def test_feedline_error(self):
        detail = detail_from_exception(DatabaseError())
        assert detail.status_code == 500
        assert detail.message.startswith("A database error occurred")

    def test_http_exception(self):
        detail = detail_from_exception(StarletteHTTPException(status_code=405))
        assert detail.status_code == 405
        assert detail.message == "Method Not Allowed"

    def test_unexpected_exception_is_masked(self):
        detail = detail_from_exception(KeyError("internal_table_name"))
        assert detail.status_code == 500
        assert detail.message == UNEXPECTED_MESSAGE
        assert "internal_table_name" not in json.dumps(detail.to_envelope())

    def test_context_never_reaches_envelope(self):
        exc = FeedlineError("Nope", status_code=400, context={"sql": "SELECT secret"})
        envelope = detail_from_exception(exc).to_envelope()
        assert set(envelope) <= ENVELOPE_KEYS
        assert "SELECT secret" not in json.dumps(envelope)


class TestRender:
    def test_success_renders_data(self):
        response = render_result(Success(data={"status": "ok"}))
        assert response.status_code == 200
        assert body_of(response) == {"data": {"status": "ok"}}

    def test_wrapped_failure_renders_envelope_with_status(self):
        cause = FeedlineError("Invalid input", status_code=422, data={"field": "title"})
        response = render_failure(Failure(errors=(wrapped(cause),)))

        assert response.status_code == 422
        assert body_of(response) == {
            "message": "Invalid input",
            "status": 422,
            "data": {"field": "title"},
        }

    def test_first_error_decides(self):
        first = wrapped(AuthorizationError())
        second = wrapped(FeedlineError("Later", status_code=409))
        response = render_failure(Failure(errors=(first, second)))
        assert response.status_code == 401
        assert body_of(response)["message"] == "Not authenticated."

    def test_passthrough_failure_renders_graphql_errors(self):
        error = GraphQLError("Syntax Error: Unexpected <EOF>.")
        response = render_failure(Failure(errors=(error,)))

        assert response.status_code == 400
        assert body_of(response) == {"errors": [error.formatted]}

    def test_passthrough_failure_keeps_its_status(self):
        response = render_failure(Failure.from_message("Only POST", status_code=405))
        assert response.status_code == 405
        assert body_of(response)["errors"][0]["message"] == "Only POST"


class UpstreamUnavailable(Exception):
    """Collaborator exception that is not a FeedlineError but carries the triple."""

    status_code = 503

    def __init__(self):
        super().__init__("pool exhausted: 20/20 connections in use")
        self.data = {"retry": True}


class TestSingleChokepoint:
    def test_foreign_exception_keeps_status_and_data(self):
        detail = detail_from_exception(UpstreamUnavailable())

        assert detail.status_code == 503
        assert detail.payload == {"retry": True}
        assert detail.message == UNEXPECTED_MESSAGE

    def test_same_triple_through_both_paths(self):
        cause = UpstreamUnavailable()
        via_graphql = normalize_error(wrapped(cause))
        via_safety_net = detail_from_exception(cause)

        assert via_graphql.status_code == via_safety_net.status_code == 503
        assert via_graphql.payload == via_safety_net.payload == {"retry": True}

    def test_http_exception_has_no_payload(self):
        detail = detail_from_exception(StarletteHTTPException(status_code=404, detail="Not Found"))
        assert detail.to_envelope() == {"message": "Not Found", "status": 404}
