import asyncio

import pytest
from sqlalchemy import delete

from app.core.funnel import Stage
from app.db.base import Base
from app.db.session import async_session_maker, engine
from app.errors import ConcurrentModification
from app.models.application import Application
from app.schemas.application import StageTransitionRequest
from app.services.pipeline_service import PipelineService
from tests.conftest import new_application_data


@pytest.mark.db
@pytest.mark.asyncio
async def test_racing_transitions_fork_nothing():
    """Two sessions move the same application at once; exactly one wins."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as db:
        application = await PipelineService(db).create_application(new_application_data())
        await db.commit()
        application_id = application.id

    async def move(to_stage: Stage, actor: str):
        async with async_session_maker() as db:
            try:
                await PipelineService(db).transition(
                    application_id,
                    StageTransitionRequest(to_stage=to_stage),
                    actor=actor,
                )
                await db.commit()
            except ConcurrentModification:
                await db.rollback()
                raise

    try:
        results = await asyncio.gather(
            move(Stage.HR_INTERVIEW, "recruiter-1"),
            move(Stage.CV_RECEIVED, "recruiter-2"),
            return_exceptions=True,
        )

        failures = [result for result in results if isinstance(result, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], ConcurrentModification)

        async with async_session_maker() as db:
            service = PipelineService(db)
            history = await service.get_history(application_id)
            report = await service.check_consistency(application_id)
        assert len(history) == 3
        assert report.consistent
    finally:
        async with async_session_maker() as db:
            await db.execute(delete(Application).where(Application.id == application_id))
            await db.commit()
        await engine.dispose()
