"""
Record Store Connection and Session Management

This module handles database connectivity using SQLAlchemy's async engine.
PostgreSQL (asyncpg) is the deployment target; SQLite (aiosqlite) works for
local runs and tests.
"""
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
import logging

from face_registry.config import DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW

logger = logging.getLogger(__name__)

# Base class for ORM models
Base = declarative_base()


def build_engine(url: str = DATABASE_URL) -> AsyncEngine:
    """Create an async engine for the given URL."""
    options = {
        "echo": False,  # Set to True for SQL debugging
        "pool_pre_ping": True,  # Enable connection health checks
    }
    if not url.startswith("sqlite"):
        options["pool_size"] = DB_POOL_SIZE
        options["max_overflow"] = DB_MAX_OVERFLOW
    return create_async_engine(url, **options)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine):
    """Verify connectivity and create the records table if needed."""
    # Registers the ORM models on Base.metadata
    from face_registry import models  # noqa: F401

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database connection established successfully")
    except Exception as e:
        logger.error(f"Failed to connect to database: {e}")
        raise


async def close_db(engine: AsyncEngine):
    """Close database connection pool."""
    await engine.dispose()
    logger.info("Database connection pool closed")
