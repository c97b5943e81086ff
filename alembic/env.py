"""Alembic async env — runs autogenerate against all cafe_erp/domain/* models."""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from cafe_erp.core.config import settings
from cafe_erp.db.base import Base

# Load all ORM models so Alembic can detect them
import cafe_erp.domain  # noqa: F401

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# `alembic -x url=...` overrides DATABASE_URL (e.g. to migrate a scratch database)
DATABASE_URL = context.get_x_argument(as_dictionary=True).get("url") or settings.database_url
IS_SQLITE = DATABASE_URL.startswith("sqlite")


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=IS_SQLITE,  # SQLite has no ALTER COLUMN
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(DATABASE_URL)
    async with engine.connect() as connection:
        await connection.run_sync(lambda sync_conn: _configure(connection=sync_conn))
        async with connection.begin():
            await connection.run_sync(lambda _: context.run_migrations())
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
