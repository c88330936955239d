"""
Feedline Backend - Data Store Connection
==========================================

What:  Async SQLAlchemy engine, session factory, startup connectivity check and shutdown.
How:   create_app() builds one engine per application and injects it into the
       request pipeline. Resolvers open sessions through the execution context
       (ExecutionContext.session), which uses session_scope() below.
When:  Engine is created with the app; verify_connection() runs in the
       lifespan startup phase and aborts startup when the store is unreachable.

Connection Pooling Strategy (server databases only):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour
SQLite (tests, local experiments) keeps SQLAlchemy's default pool.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from feedline.config import Settings
from feedline.exceptions import DatabaseError

logger = logging.getLogger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine described by `settings.database_url`."""
    options = {"echo": settings.log_level == "DEBUG"}
    if not settings.uses_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(settings.database_url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: attributes stay readable after commit
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope(
    factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a transactional session.

    Commits when the block exits normally, rolls back and re-raises on any
    error, always closes the session (returns the connection to the pool).
    """
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def verify_connection(engine: AsyncEngine) -> None:
    """
    Check the data store with SELECT 1.

    Raises:
        DatabaseError: the store is unreachable. Callers at startup must let
        this propagate so the process never starts serving.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database connection error: %s", str(e))
        raise DatabaseError(
            message="Could not connect to the database",
            context={"error": str(e)},
        ) from e
    logger.info("Database connection successful")


async def dispose_engine(engine: AsyncEngine) -> None:
    """Close every pooled connection. Called during application shutdown."""
    await engine.dispose()
