"""Alembic environment for the statsync schema.

The database URL comes from ``statsync.config`` (``DATABASE_URL`` / ``.env``)
and can be overridden per run with ``alembic -x url=... upgrade head``.
Autogenerate only looks at tables declared on ``statsync.db.Base``.
"""
from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from statsync.config import DATABASE_URL
from statsync.db import Base
from statsync.models import integration_credential  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _migration_url() -> str:
    url = context.get_x_argument(as_dictionary=True).get("url") or DATABASE_URL
    if url.endswith(":memory:"):
        raise RuntimeError("Set DATABASE_URL (or pass -x url=...) to a persistent database before migrating")
    return url


def _include_object(obj, name, type_, reflected, compare_to) -> bool:
    # Leave tables owned by other services alone
    if type_ == "table" and reflected and compare_to is None:
        return name in target_metadata.tables
    return True


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=_include_object,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it."""
    _configure(url=_migration_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})

    with context.begin_transaction():
        context.run_migrations()


def _run_with_connection(connection) -> None:
    _configure(connection=connection)

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(_migration_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_with_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
