"""PostgreSQL connection management.

Schema is declared with SQLAlchemy and created via `init_db`; queries go
through a shared asyncpg pool.
"""

from typing import Optional

import asyncpg
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ..config import DATABASE_URL, DB_POOL_MAX_SIZE, DB_POOL_MIN_SIZE, asyncpg_dsn


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""

    pass


# Create async engine (only if DATABASE_URL is configured)
engine: Optional[AsyncEngine] = None

if DATABASE_URL:
    engine = create_async_engine(
        DATABASE_URL,
        echo=False,  # Set to True for SQL debugging
        pool_pre_ping=True,
    )

# Shared asyncpg pool (set during API startup)
_pool: Optional[asyncpg.Pool] = None


def _check_configured():
    """Raise an error if the database is not configured."""
    if engine is None:
        raise RuntimeError(
            "Database not configured. Set DATABASE_URL environment variable "
            "to a PostgreSQL connection string."
        )


async def init_db() -> None:
    """Initialize database - create all tables."""
    _check_configured()
    # Register models on Base.metadata
    from . import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def open_pool() -> asyncpg.Pool:
    """Create the shared asyncpg pool. Called during API startup."""
    global _pool
    _check_configured()
    _pool = await asyncpg.create_pool(
        asyncpg_dsn(DATABASE_URL),
        min_size=DB_POOL_MIN_SIZE,
        max_size=DB_POOL_MAX_SIZE,
    )
    return _pool


def get_pool() -> asyncpg.Pool:
    """Get the shared asyncpg pool. Raises if not initialized."""
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Ensure the API server is running.")
    return _pool


async def close_pool() -> None:
    """Close the shared pool. Called during API shutdown."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
