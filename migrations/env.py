"""Alembic migration environment.

The target URL comes from Settings.database_url (DATABASE_URL env / .env),
rewritten from the async driver the service uses to the sync driver Alembic
runs on:
    postgresql+asyncpg://...  →  postgresql+psycopg2://...
"""
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

from healthops.core.config import get_settings
from healthops.models.tables import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _sync_url(url: str) -> str:
    return (
        url
        .replace("postgresql+asyncpg://", "postgresql+psycopg2://")
        .replace("sqlite+aiosqlite://", "sqlite://")
    )


config.set_main_option("sqlalchemy.url", _sync_url(get_settings().database_url))
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
