"""Alembic environment for the fleet schema.

The database URL comes from application settings (DATABASE_URL), so
migrations always target the same database the service reads from.
Online migrations run through the async engine.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

from vehicle_timeline.config import settings
from vehicle_timeline.core.database.base import Base

# Import every model module so Base.metadata is complete
from vehicle_timeline.core.activity import models as activity_models  # noqa: F401
from vehicle_timeline.core.bookings import models as booking_models  # noqa: F401
from vehicle_timeline.core.claims import models as claim_models  # noqa: F401
from vehicle_timeline.core.hosts import models as host_models  # noqa: F401
from vehicle_timeline.core.users import models as user_models  # noqa: F401
from vehicle_timeline.core.vehicles import models as vehicle_models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", settings.database_url)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (emit SQL without a live connection)."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations in 'online' mode through the async engine."""
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
