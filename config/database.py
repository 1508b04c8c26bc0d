"""
config/database.py
Async SQLAlchemy engine, session factory, and base model.
PostgreSQL (asyncpg) in production, SQLite (aiosqlite) for development and tests.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


def _engine_kwargs(database_url: str) -> dict:
    """SQLite has no connection pool sizing; PostgreSQL gets the full pool config."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {"echo": settings.DEBUG}
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
        "pool_pre_ping": True,       # Detect stale connections
        "pool_recycle": 3600,        # Recycle connections every hour
        "echo": settings.DEBUG,      # Log SQL in debug mode
    }


# ── Engine ────────────────────────────────────────────────────
engine = create_async_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))

# ── Session Factory ───────────────────────────────────────────
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,      # Don't expire after commit (async-safe)
    autocommit=False,
    autoflush=False,
)


# ── Base Model ────────────────────────────────────────────────
class Base(DeclarativeBase):
    """All ORM models inherit from this."""
    pass


# ── Dependency ────────────────────────────────────────────────
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: one session per request.
    Booking writes commit inside the lifecycle engine; whatever is still
    pending when the route returns is committed here, or rolled back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# Same session handling for startup seeding and scripts
get_db_context = asynccontextmanager(get_db)


async def init_db() -> None:
    """Create all tables. Run during app startup."""
    # Register models on Base.metadata
    import shared.models.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ping_db() -> None:
    async with AsyncSessionLocal() as session:
        await session.execute(text("SELECT 1"))


async def close_db() -> None:
    """Dispose engine. Run during app shutdown."""
    await engine.dispose()
