"""Health check router."""

from pathlib import Path
from typing import List, Optional, Tuple

from alembic.config import Config
from alembic.script import ScriptDirectory
from fastapi import APIRouter, Depends
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import get_db
from app.models import Application, StageHistoryEntry

router = APIRouter()

PIPELINE_TABLES = (Application.__tablename__, StageHistoryEntry.__tablename__)


def _alembic_head() -> Optional[str]:
    project_root = Path(__file__).resolve().parents[2]
    ini_path = project_root / "alembic.ini"
    script_location = project_root / "alembic"
    if not ini_path.exists() or not script_location.exists():
        return None

    config = Config(str(ini_path))
    config.set_main_option("script_location", str(script_location))
    return ScriptDirectory.from_config(config).get_current_head()


async def _missing_tables(db: AsyncSession) -> List[str]:
    connection = await db.connection()
    existing = await connection.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
    return [name for name in PIPELINE_TABLES if name not in existing]


async def _database_state(db: AsyncSession) -> Tuple[bool, Optional[str], List[str]]:
    """(reachable, alembic revision, missing pipeline tables)."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return False, None, list(PIPELINE_TABLES)

    try:
        revision = (await db.execute(text("SELECT version_num FROM alembic_version"))).scalar_one_or_none()
    except SQLAlchemyError:
        await db.rollback()
        revision = None

    return True, revision, await _missing_tables(db)


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """API, database, migration and pipeline table checks."""
    db_ok, alembic_current, missing_tables = await _database_state(db)
    alembic_head = _alembic_head()

    return {
        "app": settings.APP_NAME,
        "api_ok": True,
        "db_ok": db_ok,
        "schema_ok": db_ok and not missing_tables,
        "missing_tables": missing_tables,
        "alembic_head_ok": bool(alembic_current and alembic_current == alembic_head),
        "alembic_current": alembic_current,
        "alembic_head": alembic_head,
    }
