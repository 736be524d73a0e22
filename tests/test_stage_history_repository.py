import uuid
from datetime import timedelta

import pytest

from app.core.funnel import Stage, StageStatus
from app.errors import ApplicationNotFound, HistoryValidationError, StaleFromStage
from app.repositories.stage_history_repository import StageHistoryRepository
from app.schemas.stage_history import StageHistoryCreate
from app.utils.time import ensure_utc
from tests.conftest import create_application, make_orphan_application


@pytest.mark.asyncio
async def test_new_application_ledger_is_sequenced(db):
    application = await create_application(db)
    repo = StageHistoryRepository(db)

    entries = await repo.list_for(application.id)

    assert [entry.sequence for entry in entries] == [1, 2]
    assert entries[0].from_stage is None
    assert (await repo.last_entry(application.id)).to_stage == Stage.HR_REVIEW.value
    assert await repo.count_for(application.id) == 2


@pytest.mark.asyncio
async def test_append_requires_from_stage_after_first_entry(db):
    application = await create_application(db)
    repo = StageHistoryRepository(db)

    with pytest.raises(HistoryValidationError):
        await repo.append(
            StageHistoryCreate(
                application_id=application.id,
                from_stage=None,
                to_stage=Stage.HR_INTERVIEW,
                status=StageStatus.PENDING,
            )
        )


@pytest.mark.asyncio
async def test_append_rejects_stale_from_stage(db):
    application = await create_application(db)
    repo = StageHistoryRepository(db)

    with pytest.raises(StaleFromStage) as exc_info:
        await repo.append(
            StageHistoryCreate(
                application_id=application.id,
                from_stage=Stage.CV_RECEIVED,
                to_stage=Stage.HR_REVIEW,
                status=StageStatus.IN_PROGRESS,
            )
        )

    # Still a validation error for callers that only know the ledger
    assert isinstance(exc_info.value, HistoryValidationError)
    assert exc_info.value.status_code == 422
    assert exc_info.value.payload["error"]["code"] == "HISTORY_VALIDATION_ERROR"
    assert exc_info.value.details["current_stage"] == Stage.HR_REVIEW.value


@pytest.mark.asyncio
async def test_append_requires_to_stage(db):
    application = await create_application(db)
    repo = StageHistoryRepository(db)
    entry = StageHistoryCreate.model_construct(
        application_id=application.id,
        from_stage=Stage.HR_REVIEW,
        to_stage=None,
        status=StageStatus.PENDING,
        offer_status=None,
        final_outcome=None,
        final_rejection_reason=None,
        changed_by=None,
        changed_at=None,
        notes=None,
    )

    with pytest.raises(HistoryValidationError):
        await repo.append(entry)


@pytest.mark.asyncio
async def test_append_unknown_application(db):
    repo = StageHistoryRepository(db)

    with pytest.raises(ApplicationNotFound):
        await repo.append(
            StageHistoryCreate(
                application_id=uuid.uuid4(),
                from_stage=None,
                to_stage=Stage.CV_RECEIVED,
                status=StageStatus.COMPLETED,
            )
        )


@pytest.mark.asyncio
async def test_list_for_orders_by_time_then_sequence(db):
    application = await create_application(db)
    repo = StageHistoryRepository(db)
    entries = await repo.list_for(application.id)

    # Push the first entry after the second; timestamps decide the order
    later = ensure_utc(entries[1].changed_at) + timedelta(minutes=5)
    await repo.set_changed_at([entries[0].id], later)
    await db.commit()

    reordered = await repo.list_for(application.id)
    assert [entry.sequence for entry in reordered] == [2, 1]


@pytest.mark.asyncio
async def test_backfill_refuses_existing_history(db):
    application = await create_application(db)
    repo = StageHistoryRepository(db)

    with pytest.raises(HistoryValidationError):
        await repo.backfill(
            application.id,
            [
                StageHistoryCreate(
                    application_id=application.id,
                    to_stage=Stage.CV_RECEIVED,
                    status=StageStatus.COMPLETED,
                )
            ],
        )


@pytest.mark.asyncio
async def test_backfill_and_missing_history_lookup(db):
    orphan = make_orphan_application(Stage.HR_INTERVIEW, StageStatus.IN_PROGRESS)
    db.add(orphan)
    await db.flush()
    repo = StageHistoryRepository(db)

    assert await repo.application_ids_without_history() == [orphan.id]

    rows = await repo.backfill(
        orphan.id,
        [
            StageHistoryCreate(
                application_id=orphan.id,
                to_stage=Stage.CV_RECEIVED,
                status=StageStatus.COMPLETED,
                changed_at=orphan.created_at,
            ),
            StageHistoryCreate(
                application_id=orphan.id,
                from_stage=Stage.CV_RECEIVED,
                to_stage=Stage.HR_INTERVIEW,
                status=StageStatus.IN_PROGRESS,
                changed_at=orphan.created_at,
            ),
        ],
    )
    await db.commit()

    assert [row.sequence for row in rows] == [1, 2]
    assert await repo.application_ids_without_history() == []

