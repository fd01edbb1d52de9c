"""
Async SQLAlchemy engine and session factory.

Every API request gets its own session; the approval engine commits or
rolls back that session as one unit of work.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from sahem.config import settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    """
    Engine for the given URL.

    asyncpg behind a transaction pooler cannot use prepared statement
    caching, and connections are not pooled on our side.
    """
    connect_args = {}
    if "+asyncpg" in database_url:
        connect_args["statement_cache_size"] = 0

    return create_async_engine(
        database_url,
        poolclass=NullPool,
        echo=not settings.is_production,
        connect_args=connect_args,
    )


engine = build_engine(settings.database_url)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding a request-scoped session.

    Services commit explicitly; whatever is left uncommitted when the
    route fails is rolled back here.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Session for code outside a request (startup, background work)."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
