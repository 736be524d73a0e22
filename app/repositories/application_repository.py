"""
Application repository - database operations for applications.

The projection columns (current_stage, current_stage_status, offer_status,
final_outcome, final_rejection_reason) are only written through
``create_with_history`` and ``apply_transition``, each of which also writes
the matching ledger row in the same transaction.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.funnel import Stage, StageStatus
from app.errors import ConcurrentModification, StaleFromStage
from app.models.application import Application
from app.repositories.stage_history_repository import StageHistoryRepository
from app.schemas.application import ApplicationCreate
from app.schemas.stage_history import StageHistoryCreate


@dataclass(frozen=True)
class ObservedState:
    """Pipeline state as read at the start of a transition."""

    stage: Stage
    status: StageStatus
    version: int

    @classmethod
    def from_application(cls, application: Application) -> "ObservedState":
        return cls(
            stage=Stage(application.current_stage),
            status=StageStatus(application.current_stage_status),
            version=application.version,
        )


class ApplicationRepository:
    """Repository for Application database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.history = StageHistoryRepository(db)

    async def get_by_id(self, application_id: UUID, fresh: bool = False) -> Optional[Application]:
        """
        Get an application by ID.

        With ``fresh=True`` already-loaded instances are overwritten with the
        row as currently stored, which is what a transition must observe.
        """
        query = select(Application).where(Application.id == application_id)
        if fresh:
            query = query.execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def list(
        self,
        limit: int = 50,
        offset: int = 0,
        job_id: Optional[UUID] = None,
        stage: Optional[Stage] = None,
    ) -> List[Application]:
        """List applications, newest first, with optional filters."""
        query = select(Application)

        if job_id is not None:
            query = query.where(Application.job_id == job_id)
        if stage is not None:
            query = query.where(Application.current_stage == Stage(stage).value)

        query = query.order_by(Application.created_at.desc(), Application.id)
        query = query.limit(limit).offset(offset)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_all(self) -> List[Application]:
        """Every application, oldest first. Used by maintenance passes."""
        result = await self.db.execute(
            select(Application).order_by(Application.created_at.asc(), Application.id)
        )
        return list(result.scalars().all())

    async def count_by_job_and_stage(self, job_id: Optional[UUID] = None) -> List[Tuple[UUID, str, int]]:
        """(job_id, current_stage, count) rows for the pipeline dashboard."""
        query = select(
            Application.job_id,
            Application.current_stage,
            func.count(Application.id),
        ).group_by(Application.job_id, Application.current_stage)

        if job_id is not None:
            query = query.where(Application.job_id == job_id)

        result = await self.db.execute(query)
        return [(row[0], row[1], int(row[2])) for row in result.all()]

    async def create_with_history(
        self,
        data: ApplicationCreate,
        created_at: datetime,
        notes: Optional[str] = None,
    ) -> Application:
        """
        Insert an application at CV_RECEIVED/COMPLETED together with its
        first ledger entry (null -> CV_RECEIVED).
        """
        application = Application(
            id=uuid.uuid4(),
            candidate_id=data.candidate_id,
            job_id=data.job_id,
            resume_url=data.resume_url,
            source=data.source,
            current_stage=Stage.CV_RECEIVED.value,
            current_stage_status=StageStatus.COMPLETED.value,
            version=1,
            created_at=created_at,
            updated_at=created_at,
        )
        self.db.add(application)
        await self.db.flush()

        await self.history.append(
            StageHistoryCreate(
                application_id=application.id,
                from_stage=None,
                to_stage=Stage.CV_RECEIVED,
                status=StageStatus.COMPLETED,
                changed_by=None,
                changed_at=created_at,
                notes=notes,
            )
        )
        return application

    async def apply_transition(
        self,
        application_id: UUID,
        observed: ObservedState,
        values: Dict[str, Any],
        entry: StageHistoryCreate,
    ) -> Application:
        """
        Append ``entry`` and write ``values`` onto the application, guarded by
        the version read in ``observed``.

        Raises:
            ConcurrentModification: the stage or version moved since
                ``observed`` was taken.
        """
        try:
            await self.history.append(entry)
        except StaleFromStage as exc:
            raise ConcurrentModification(
                "Application stage changed since it was read; reload and retry",
                exc.details,
            ) from exc

        result = await self.db.execute(
            update(Application)
            .where(
                Application.id == application_id,
                Application.version == observed.version,
            )
            .values(
                **values,
                version=observed.version + 1,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConcurrentModification(
                "Application was modified since it was read; reload and retry",
                {
                    "application_id": str(application_id),
                    "observed_version": observed.version,
                },
            )

        return await self.get_by_id(application_id, fresh=True)
