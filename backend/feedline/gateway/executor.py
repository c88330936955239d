"""
Feedline Backend - Execution Gateway
======================================

What:  Runs exactly one GraphQL operation per HTTP request and captures its
       outcome as a Success or a Failure.
How:   Operation parameters come from the query string (GET), the multipart or
       urlencoded form fields (uploads), or a JSON body. The document is
       parsed, validated and executed with graphql-core; the ExecutionContext
       (identity, upload, data store) is the engine's context value.
       Nothing raised by the engine or a resolver escapes execute(): every
       failure comes back as a Failure for the error normalizer.

Request shapes:
    POST /graphql   {"query": "...", "variables": {...}, "operationName": "..."}
    POST /graphql   multipart: query=..., variables=<json>, image=<file>
    GET  /graphql?query=...&variables=<json>   (query operations only)
"""

import json
import logging
from dataclasses import dataclass
from inspect import isawaitable
from typing import Any, Dict, Iterable, Optional

from graphql import (
    GraphQLError,
    GraphQLSchema,
    OperationType,
    execute,
    get_operation_ast,
    parse,
    validate,
)
from starlette.datastructures import FormData
from starlette.requests import Request

from feedline.gateway.context import ExecutionContext
from feedline.gateway.errors import GENERIC_MESSAGE, status_from
from feedline.gateway.results import ExecutionResult, Failure, Success

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OperationRequest:
    query: str
    variables: Optional[Dict[str, Any]] = None
    operation_name: Optional[str] = None


class OperationRequestError(Exception):
    """The HTTP request does not describe a usable operation."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def build_operation_request(
    query: Any, variables: Any = None, operation_name: Any = None
) -> OperationRequest:
    if not isinstance(query, str) or not query.strip():
        raise OperationRequestError("Must provide query string.")

    if isinstance(variables, str):
        if variables.strip():
            try:
                variables = json.loads(variables)
            except ValueError:
                raise OperationRequestError("Variables are invalid JSON.")
        else:
            variables = None
    if variables is not None and not isinstance(variables, dict):
        raise OperationRequestError("Variables must be provided as an object.")

    if not isinstance(operation_name, str) or not operation_name:
        operation_name = None

    return OperationRequest(query=query, variables=variables, operation_name=operation_name)


async def read_operation_request(
    request: Request, form: Optional[FormData] = None
) -> OperationRequest:
    """Extract the operation parameters from the HTTP request."""
    if request.method == "GET":
        params = request.query_params
        return build_operation_request(
            params.get("query"), params.get("variables"), params.get("operationName")
        )

    if form is not None:
        return build_operation_request(
            form.get("query"), form.get("variables"), form.get("operationName")
        )

    body = await request.body()
    if not body.strip():
        raise OperationRequestError("Must provide query string.")
    try:
        payload = json.loads(body)
    except ValueError:
        raise OperationRequestError("POST body sent invalid JSON.")

    if isinstance(payload, list):
        raise OperationRequestError("Batched operations are not supported.")
    if not isinstance(payload, dict):
        raise OperationRequestError("POST body sent invalid JSON.")

    return build_operation_request(
        payload.get("query"), payload.get("variables"), payload.get("operationName")
    )


class ExecutionGateway:
    """
    Single entry point for every domain operation.

    Args:
        schema:      Executable schema (external collaborator).
        root_value:  Root resolvers, e.g. a dict of `(info, **args)` callables.
    """

    def __init__(self, schema: GraphQLSchema, root_value: Any = None):
        self.schema = schema
        self.root_value = root_value

    async def execute(
        self,
        request: Request,
        context: ExecutionContext,
        form: Optional[FormData] = None,
    ) -> ExecutionResult:
        try:
            operation = await read_operation_request(request, form)
        except OperationRequestError as e:
            logger.info("Rejected GraphQL request: %s", e.message)
            return Failure.from_message(e.message, e.status_code)

        return await self.run(operation, context, allow_mutations=request.method == "POST")

    async def run(
        self,
        operation: OperationRequest,
        context: ExecutionContext,
        allow_mutations: bool = True,
    ) -> ExecutionResult:
        try:
            document = parse(operation.query)
        except GraphQLError as error:
            return self._failed([error])

        validation_errors = validate(self.schema, document)
        if validation_errors:
            return self._failed(validation_errors)

        if not allow_mutations:
            definition = get_operation_ast(document, operation.operation_name)
            if definition is not None and definition.operation != OperationType.QUERY:
                return Failure.from_message(
                    f"Can only perform a {definition.operation.value} operation "
                    "from a POST request.",
                    status_code=405,
                )

        try:
            result = execute(
                self.schema,
                document,
                root_value=self.root_value,
                context_value=context,
                variable_values=operation.variables,
                operation_name=operation.operation_name,
            )
            if isawaitable(result):
                result = await result
        except Exception as e:
            # Engine-level failure outside any resolver; still reported as a Failure.
            error = GraphQLError(str(e) or GENERIC_MESSAGE, original_error=e)
            return self._failed([error])

        if result.errors:
            return self._failed(result.errors)
        return Success(data=result.data)

    @staticmethod
    def _failed(errors: Iterable[GraphQLError]) -> Failure:
        errors = tuple(errors)
        for error in errors:
            cause = error.original_error
            if cause is None:
                logger.info("GraphQL request error: %s", error.message)
                continue
            status = status_from(getattr(cause, "status_code", None))
            if status >= 500:
                logger.error(
                    "Operation failed: %s",
                    error.message,
                    exc_info=(type(cause), cause, cause.__traceback__),
                )
            else:
                logger.warning("Operation refused (%d): %s", status, error.message)
        return Failure(errors=errors)
