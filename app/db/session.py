"""
Database engine and session factory.

Pipeline writes rely on the session's transaction: the orchestrator only
flushes, and whoever owns the session commits or rolls back.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    future=True,
)

# expire_on_commit=False keeps returned rows readable after the handler commits
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a request-scoped session.

    Anything left uncommitted when the handler raises is rolled back, so a
    rejected transition never leaves a half-written projection or ledger row.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def get_async_session_context(commit: bool = True) -> AsyncGenerator[AsyncSession, None]:
    """
    Session scope for maintenance scripts.

    Commits on a clean exit, or rolls back instead when ``commit`` is False
    (dry runs). Any exception rolls back and propagates.
    """
    async with async_session_maker() as session:
        try:
            yield session
            if commit:
                await session.commit()
            else:
                await session.rollback()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
