"""Persistence: async engine, session factory, and Base for SQLAlchemy ORM.

Engine and session factory are built explicitly from Settings (no module
globals) so tests and the lifespan can own their lifecycle. Schema is created
with create_all() for bootstrapping; production schemas are expected to be
managed outside this package.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from authz.core.config import Settings
from authz.domain.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

# Errors that mean "the store could not be reached", not "the query was wrong".
STORE_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, TimeoutError)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Create the async engine; pool options only apply to server databases."""
    kwargs: dict[str, Any] = {"echo": settings.database_echo, "pool_pre_ping": True}
    if "postgresql" in settings.database_url:
        kwargs["pool_size"] = settings.db_pool_size if settings.db_pool_size is not None else 20
        kwargs["max_overflow"] = (
            settings.db_max_overflow if settings.db_max_overflow is not None else 30
        )
        kwargs["pool_recycle"] = 3600
        kwargs["connect_args"] = {
            "command_timeout": settings.db_command_timeout
            if settings.db_command_timeout is not None
            else 60
        }
    return create_async_engine(settings.database_url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with expire_on_commit disabled (DTOs outlive sessions)."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


@asynccontextmanager
async def transactional_session(
    session_factory: async_sessionmaker[AsyncSession],
    operation: str = "transaction",
) -> AsyncIterator[AsyncSession]:
    """Yield a session inside a transaction.

    Commits on success, rolls back on exception. Connectivity failures and
    timeouts are re-raised as StoreUnavailableError; domain errors pass through.
    """
    try:
        async with session_factory() as session:
            async with session.begin():
                yield session
    except STORE_UNAVAILABLE_ERRORS as e:
        logger.warning("Store unavailable during %s: %s", operation, e)
        raise StoreUnavailableError(operation, str(e)) from e


async def create_all(engine: AsyncEngine) -> None:
    """Create every table registered on Base (idempotent)."""
    # Import models so they register on Base.metadata
    from authz.infrastructure.persistence import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Authorization schema ensured")
