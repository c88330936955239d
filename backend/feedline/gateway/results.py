"""
Outcome of one GraphQL operation: exactly one Success or one Failure.
"""

from dataclasses import dataclass
from typing import Any, Tuple, Union

from graphql import GraphQLError


@dataclass(frozen=True)
class Success:
    data: Any


@dataclass(frozen=True)
class Failure:
    """
    Captured errors of a failed operation, in the order the engine reported them.

    `status_code` is used only when the errors are passed through unchanged
    (request/validation errors with no wrapped application error).
    """

    errors: Tuple[GraphQLError, ...]
    status_code: int = 400

    @property
    def cause(self) -> GraphQLError:
        return self.errors[0]

    @classmethod
    def from_message(cls, message: str, status_code: int = 400) -> "Failure":
        return cls(errors=(GraphQLError(message),), status_code=status_code)


ExecutionResult = Union[Success, Failure]
