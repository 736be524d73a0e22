"""
Tests for the session scope the maintenance scripts run in.

async_session_maker is pointed at the SQLite test database so the scope
commits and rolls back against the same data the assertions read.
"""

import pytest
import pytest_asyncio

import app.db.session as session_module
from app.core.funnel import Stage, StageStatus
from app.db.session import get_async_session_context
from app.repositories.stage_history_repository import StageHistoryRepository
from app.services.history_reconciliation_service import HistoryReconciliationService
from tests.conftest import make_orphan_application


@pytest_asyncio.fixture
async def script_sessions(monkeypatch, session_maker):
    monkeypatch.setattr(session_module, "async_session_maker", session_maker)
    return session_maker


async def _add_orphan(db):
    orphan = make_orphan_application(Stage.HR_INTERVIEW, StageStatus.PENDING)
    orphan_id = orphan.id
    db.add(orphan)
    await db.commit()
    return orphan_id


@pytest.mark.asyncio
async def test_scope_commits_on_clean_exit(db, script_sessions):
    orphan_id = await _add_orphan(db)

    async with get_async_session_context() as script_db:
        result = await HistoryReconciliationService(script_db).backfill_missing_history()

    assert result.repaired == 1
    assert await StageHistoryRepository(db).count_for(orphan_id) == 2


@pytest.mark.asyncio
async def test_scope_without_commit_discards_writes(db, script_sessions):
    orphan_id = await _add_orphan(db)

    async with get_async_session_context(commit=False) as script_db:
        await HistoryReconciliationService(script_db).backfill_missing_history()
        # Visible inside the scope before it rolls back
        assert await StageHistoryRepository(script_db).count_for(orphan_id) == 2

    assert await StageHistoryRepository(db).count_for(orphan_id) == 0


@pytest.mark.asyncio
async def test_scope_rolls_back_and_reraises(db, script_sessions):
    orphan_id = await _add_orphan(db)

    with pytest.raises(RuntimeError, match="interrupted"):
        async with get_async_session_context() as script_db:
            await HistoryReconciliationService(script_db).backfill_missing_history()
            raise RuntimeError("interrupted")

    assert await StageHistoryRepository(db).count_for(orphan_id) == 0
