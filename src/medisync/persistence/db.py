"""
Database connection and session management.

Provides async database access with a process-wide engine and session
factory. SQLite URLs are served by aiosqlite, PostgreSQL URLs by asyncpg.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, AsyncGenerator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine


DEFAULT_DATABASE_URL = "sqlite:///data/medisync.db"


# =============================================================================
# Global Engine References
# =============================================================================

_async_engine: "AsyncEngine | None" = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


# =============================================================================
# SQLite Configuration
# =============================================================================


def configure_sqlite(engine: Engine) -> None:
    """Configure SQLite connections.

    Enables:
    - Foreign key enforcement (cascading deletes of compensated patients)
    - WAL mode for crash safety during long runs
    """
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()


def get_async_url(url: str) -> str:
    """Convert a database URL to its async driver variant.

    SQLite: sqlite:/// -> sqlite+aiosqlite:///
    PostgreSQL: postgresql:// -> postgresql+asyncpg://
    """
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    elif url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    elif url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    return url


def _ensure_sqlite_dir(url: str) -> None:
    if url.startswith("sqlite") and ":memory:" not in url:
        db_path = url.split(":///", 1)[-1]
        if db_path:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)


# =============================================================================
# Engine Creation
# =============================================================================


async def get_async_engine(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> "AsyncEngine":
    """Get or create the asynchronous database engine.

    Args:
        url: SQLAlchemy database URL (will be converted to async variant)
        echo: Whether to log SQL statements
        pool_size: Connection pool size (ignored for SQLite)

    Returns:
        SQLAlchemy AsyncEngine instance
    """
    global _async_engine, _async_session_factory

    if _async_engine is not None:
        return _async_engine

    async_url = get_async_url(url)
    _ensure_sqlite_dir(async_url)

    if async_url.startswith("sqlite"):
        _async_engine = create_async_engine(async_url, echo=echo)
        configure_sqlite(_async_engine.sync_engine)
    else:
        _async_engine = create_async_engine(
            async_url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=10,
            pool_pre_ping=True,
        )

    _async_session_factory = async_sessionmaker(
        bind=_async_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )

    return _async_engine


# =============================================================================
# Session Management
# =============================================================================


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Get an asynchronous database session.

    Usage:
        async with get_async_session() as session:
            await session.execute(...)

    Yields:
        SQLAlchemy AsyncSession instance
    """
    if _async_session_factory is None:
        await get_async_engine()  # Initialize with defaults

    assert _async_session_factory is not None
    session = _async_session_factory()

    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


# =============================================================================
# Database Initialization
# =============================================================================


async def init_db_async(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> None:
    """Create all tables if they don't exist. For production, prefer Alembic."""
    engine = await get_async_engine(url, echo=echo)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db_async(url: str = DEFAULT_DATABASE_URL) -> None:
    """Drop all database tables.

    WARNING: This will delete all data!
    """
    engine = await get_async_engine(url)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# =============================================================================
# Cleanup
# =============================================================================


async def dispose_engines_async() -> None:
    """Dispose of the database engine. Call on application shutdown."""
    global _async_engine, _async_session_factory

    if _async_engine is not None:
        await _async_engine.dispose()
        _async_engine = None
        _async_session_factory = None
