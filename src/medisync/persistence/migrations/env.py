"""
Alembic environment configuration for MediSync.

Runs migrations through the same async drivers the application uses
(aiosqlite for SQLite, asyncpg for PostgreSQL).
"""

from __future__ import annotations

import asyncio
import os
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from medisync.persistence.db import get_async_url
from medisync.persistence.models import Base

# This is the Alembic Config object
config = context.config

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Target metadata for autogenerate
target_metadata = Base.metadata


def get_url() -> str:
    """Database URL from DATABASE_URL, then app.yaml, then alembic.ini."""
    url = os.environ.get("DATABASE_URL")
    if url:
        return url

    from medisync.core.config.loader import load_app_config

    app_config = load_app_config()
    return app_config.database.url or config.get_main_option(
        "sqlalchemy.url", "sqlite:///data/medisync.db"
    )


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL to the script output."""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Run migrations with the given connection."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=True,  # Required for SQLite ALTER TABLE support
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    """Run migrations in 'online' mode over an async engine."""
    url = get_async_url(get_url())

    if url.startswith("sqlite") and ":memory:" not in url:
        Path(url.split(":///", 1)[-1]).parent.mkdir(parents=True, exist_ok=True)

    connectable = create_async_engine(url, poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
