"""
Versioned schema migrations, applied once at startup.

Each migration runs in its own transaction together with the row recording
it in `schema_migrations`, so a failed migration leaves no trace and is
retried on the next start.
"""
import logging
from dataclasses import dataclass
from typing import Callable, List

from sqlalchemy import Column, DateTime, Integer, MetaData, Table, Text, func, insert, select
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from todo_app.database import Pool
from todo_app.errors import MigrationError
from todo_app.models.todo import Todo

logger = logging.getLogger(__name__)

_metadata = MetaData()

schema_migrations = Table(
    "schema_migrations",
    _metadata,
    Column("version", Integer, primary_key=True, autoincrement=False),
    Column("description", Text, nullable=False),
    Column("applied_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)


@dataclass(frozen=True)
class Migration:
    version: int
    description: str
    apply: Callable[[Connection], None]


def _create_todos(conn: Connection) -> None:
    Todo.__table__.create(conn, checkfirst=True)


MIGRATIONS: List[Migration] = [
    Migration(1, "create todos", _create_todos),
]


async def run_migrations(pool: Pool, migrations: List[Migration] = MIGRATIONS) -> List[int]:
    """Apply pending migrations in version order; return the versions applied."""
    logger.info("Running migrations")
    try:
        async with pool.engine.begin() as conn:
            await conn.run_sync(_metadata.create_all)
            result = await conn.execute(select(schema_migrations.c.version))
            done = set(result.scalars().all())

        applied = []
        for migration in sorted(migrations, key=lambda m: m.version):
            if migration.version in done:
                continue
            logger.info(
                "Applying migration",
                extra={"version": migration.version, "description": migration.description},
            )
            async with pool.engine.begin() as conn:
                await conn.run_sync(migration.apply)
                await conn.execute(
                    insert(schema_migrations).values(
                        version=migration.version,
                        description=migration.description,
                    )
                )
            applied.append(migration.version)
    except SQLAlchemyError as exc:
        raise MigrationError(f"migration failed: {exc}") from exc

    logger.info("Migration complete", extra={"applied": applied})
    return applied
