"""
Execution context handed to every resolver as `info.context`.

Authorization is deferred to the operations: the Auth Gate only tags the
request, and each resolver that needs an identity calls `require_auth()`
(or is wrapped with `@requires_auth`). Keeping the check behind one method
makes every operation's policy visible at the top of its resolver.
"""

import functools
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.requests import Request

from feedline.database import session_scope
from feedline.exceptions import AuthorizationError, DatabaseError
from feedline.schemas.pipeline import ANONYMOUS, Identity, UploadResult


class ExecutionContext:
    def __init__(
        self,
        identity: Identity = ANONYMOUS,
        upload: Optional[UploadResult] = None,
        request: Optional[Request] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        self.identity = identity
        self.upload = upload
        self.request = request
        self._session_factory = session_factory

    @property
    def is_authenticated(self) -> bool:
        return self.identity.authenticated

    def require_auth(self) -> Identity:
        """Return the identity, or raise AuthorizationError (401) for anonymous requests."""
        if not self.identity.authenticated:
            raise AuthorizationError()
        return self.identity

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Transactional data store session for the running operation."""
        if self._session_factory is None:
            raise DatabaseError(message="No data store is configured")
        async with session_scope(self._session_factory) as session:
            yield session


def requires_auth(resolver: Callable[..., Any]) -> Callable[..., Any]:
    """
    Decorator for root-value resolvers `(info, **args)` that must not run
    for anonymous requests.
    """

    @functools.wraps(resolver)
    def wrapper(info, *args, **kwargs):
        info.context.require_auth()
        return resolver(info, *args, **kwargs)

    return wrapper
