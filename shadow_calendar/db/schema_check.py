from __future__ import annotations

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine


async def ensure_schema_up_to_date(engine: AsyncEngine, alembic_ini_path: str = "alembic.ini") -> None:
    """
    Stage/prod startup gate: the database must be at the Alembic head
    revision before the service accepts traffic.
    """
    head = ScriptDirectory.from_config(Config(alembic_ini_path)).get_current_head()

    async with engine.connect() as conn:
        try:
            await conn.execute(text("SELECT version_num FROM alembic_version LIMIT 1"))
        except SQLAlchemyError as e:
            raise RuntimeError(
                "Database schema is not managed by Alembic yet (alembic_version missing). Run: alembic upgrade head"
            ) from e

        def _current_revision(sync_conn) -> str | None:
            return MigrationContext.configure(sync_conn).get_current_revision()

        current = await conn.run_sync(_current_revision)

    if current != head:
        raise RuntimeError(f"Database schema is behind: current={current}, head={head}. Run: alembic upgrade head")
