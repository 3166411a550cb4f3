"""Startup check that the fleet schema is at the alembic head revision.

A stale schema would otherwise surface as missing-column errors in the
middle of a timeline fetch, reported as a source failure.
"""

from dataclasses import dataclass
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine

from vehicle_timeline.core.logging import get_logger

logger = get_logger(__name__)

ALEMBIC_INI_PATH = Path(__file__).resolve().parents[3] / "alembic.ini"
VERSION_TABLE = "alembic_version"


@dataclass(frozen=True)
class MigrationStatus:
    initialized: bool
    current_revision: str | None = None
    head_revision: str | None = None

    @property
    def is_up_to_date(self) -> bool:
        return self.initialized and self.current_revision == self.head_revision

    def describe(self) -> str:
        if not self.initialized:
            return f"database not initialized ({VERSION_TABLE} table missing); run `alembic upgrade head`"
        return (
            f"database at revision {self.current_revision}, head is {self.head_revision}; "
            "run `alembic upgrade head`"
        )


def head_revision(ini_path: Path = ALEMBIC_INI_PATH) -> str | None:
    if not ini_path.exists():
        logger.error("alembic_ini_missing", path=str(ini_path))
        return None
    return ScriptDirectory.from_config(Config(str(ini_path))).get_current_head()


async def check_migration_status(
    engine: AsyncEngine, ini_path: Path = ALEMBIC_INI_PATH
) -> MigrationStatus:
    async with engine.connect() as conn:
        has_table = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).has_table(VERSION_TABLE)
        )
        if not has_table:
            return MigrationStatus(initialized=False)
        current = await conn.scalar(text(f"SELECT version_num FROM {VERSION_TABLE}"))

    return MigrationStatus(
        initialized=True,
        current_revision=current,
        head_revision=head_revision(ini_path),
    )


async def require_migrations(engine: AsyncEngine, fail_on_outdated: bool = True) -> MigrationStatus:
    """Log the schema revision; raise RuntimeError when behind and ``fail_on_outdated``."""
    status = await check_migration_status(engine)

    if status.is_up_to_date:
        logger.info("migrations_up_to_date", revision=status.current_revision)
        return status

    logger.error(
        "migrations_out_of_date",
        initialized=status.initialized,
        current_revision=status.current_revision,
        head_revision=status.head_revision,
    )
    if fail_on_outdated:
        raise RuntimeError(status.describe())
    return status
