# alembic/env.py
"""Migrations for the scheduling schema, run over the application's async driver."""
from logging.config import fileConfig
import asyncio

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from clinic_app.db.base import Base
import clinic_app.db.models  # noqa: F401  (registers tables on Base.metadata)
from clinic_app.config.settings import settings

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# postgresql+asyncpg://... for online runs; the plain form is enough to render SQL
ASYNC_URL = str(settings.database_url)
OFFLINE_URL = ASYNC_URL.replace("+asyncpg", "").replace("+aiosqlite", "")
config.set_main_option("sqlalchemy.url", OFFLINE_URL)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    # SQLite cannot ALTER constraints in place
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        render_as_batch=OFFLINE_URL.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(url=OFFLINE_URL, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(ASYNC_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
