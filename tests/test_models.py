import uuid

import pytest
from sqlalchemy import inspect as sa_inspect, text

from app.core.funnel import Stage, StageStatus
from app.models.application import Application
from app.models.stage_history import StageHistoryEntry


@pytest.mark.unit
def test_models_map_plain_columns():
    """Ledger rows are loaded through the repositories, never via relationships."""
    assert not sa_inspect(Application).relationships
    assert not sa_inspect(StageHistoryEntry).relationships

    # Deleting an application removes its ledger in the database itself
    fk = next(iter(StageHistoryEntry.__table__.c.application_id.foreign_keys))
    assert fk.column.table.name == Application.__tablename__
    assert fk.ondelete == "CASCADE"


@pytest.mark.unit
def test_application_defaults_exist_on_both_sides():
    columns = Application.__table__.c

    assert columns.current_stage.default.arg == Stage.CV_RECEIVED.value
    assert columns.current_stage.server_default.arg == Stage.CV_RECEIVED.value
    assert columns.current_stage_status.default.arg == StageStatus.PENDING.value
    assert columns.current_stage_status.server_default.arg == StageStatus.PENDING.value
    assert columns.version.default.arg == 1
    assert columns.version.server_default.arg == "1"


@pytest.mark.asyncio
async def test_row_inserted_outside_the_orm_gets_pipeline_defaults(db):
    application_id = uuid.uuid4()
    await db.execute(
        text("INSERT INTO applications (id, candidate_id, job_id) VALUES (:id, :candidate_id, :job_id)"),
        {"id": application_id.hex, "candidate_id": uuid.uuid4().hex, "job_id": uuid.uuid4().hex},
    )
    await db.commit()

    row = (
        await db.execute(
            text("SELECT current_stage, current_stage_status, version FROM applications WHERE id = :id"),
            {"id": application_id.hex},
        )
    ).one()

    assert row.current_stage == Stage.CV_RECEIVED.value
    assert row.current_stage_status == StageStatus.PENDING.value
    assert row.version == 1
