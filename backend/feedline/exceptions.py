"""
Feedline Backend - Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions that carry the triple every failure is
       reported with: a message, an HTTP status code and an optional payload.
How:   Resolvers and services raise these; the GraphQL engine wraps them as the
       original cause of a GraphQLError, and the error normalizer
       (feedline.gateway.errors) turns them into the client error envelope.
       The application-level safety net handles the ones raised outside
       GraphQL execution.

Exception Hierarchy:
    FeedlineError (base)          → 500 unless a status code is given
    ├── ValidationError           → 422 Unprocessable Entity
    ├── AuthorizationError        → 401 Unauthorized
    ├── NotFoundError             → 404 Not Found
    ├── FileStorageError          → 500 Internal Server Error
    └── DatabaseError             → 500 Internal Server Error

`data` is returned to the client. `context` is for logs only.
"""

from typing import Any, Dict, Optional


class FeedlineError(Exception):
    """
    Base exception for all Feedline application errors.

    Attributes:
        message:      User-facing error description (returned in the envelope)
        status_code:  HTTP status the error envelope is sent with
        data:         Structured, client-safe payload (envelope "data" key)
        context:      Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        status_code: Optional[int] = None,
        data: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.data = data
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(FeedlineError):
    """
    Raised when operation input fails a business rule.

    Example envelope:
        {"message": "Invalid input", "status": 422, "data": {"field": "title"}}
    """

    status_code = 422

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        data = {"field": field} if field else None
        super().__init__(message=message, data=data, context=context)
        self.field = field


class AuthorizationError(FeedlineError):
    """
    Raised by an operation that requires an authenticated identity when the
    request carries none. The Auth Gate itself never raises this.
    """

    status_code = 401

    def __init__(
        self,
        message: str = "Not authenticated.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(FeedlineError):
    """Raised when a requested resource does not exist."""

    status_code = 404

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(FeedlineError):
    """
    Raised when writing an accepted upload to the images bucket fails
    (disk full, permission denied, I/O error). The OS error goes to `context`.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(FeedlineError):
    """
    Raised when the data store cannot be reached.

    At startup this is fatal: the lifespan handler re-raises it and uvicorn
    exits before binding the listening socket. During a request it surfaces as
    an ordinary execution failure.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
