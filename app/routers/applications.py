"""
Applications router - API endpoints for the hiring pipeline.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.dependencies import Actor, get_db, require_roles
from app.core.funnel import Stage
from app.core.permissions import Roles
from app.schemas.application import (
    ApplicationCreate,
    ApplicationRead,
    CompleteStageRequest,
    StageTransitionRequest,
)
from app.schemas.pipeline import ConsistencyReport
from app.schemas.stage_history import StageHistoryRead
from app.services.pipeline_service import PipelineService

router = APIRouter(prefix="/applications", tags=["applications"])

readers = require_roles(*Roles.ALL)
writers = require_roles(*Roles.PIPELINE_WRITERS)


@router.get("", response_model=List[ApplicationRead])
async def list_applications(
    _: Actor = Depends(readers),
    db: AsyncSession = Depends(get_db),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    job_id: Optional[UUID] = None,
    stage: Optional[Stage] = None,
):
    """
    List applications with pagination and filters.

    Filters: job_id, stage.
    """
    service = PipelineService(db)
    return await service.list_applications(limit=limit, offset=offset, job_id=job_id, stage=stage)


@router.post("", response_model=ApplicationRead, status_code=status.HTTP_201_CREATED)
async def create_application(
    data: ApplicationCreate,
    _: Actor = Depends(writers),
    db: AsyncSession = Depends(get_db),
):
    """
    Register a received résumé.

    The application starts at HR_REVIEW/PENDING with two history entries.
    """
    service = PipelineService(db)
    application = await service.create_application(data)
    await db.commit()
    return application


@router.get("/{application_id}", response_model=ApplicationRead)
async def get_application(
    application_id: UUID,
    _: Actor = Depends(readers),
    db: AsyncSession = Depends(get_db),
):
    """Get an application by ID."""
    service = PipelineService(db)
    return await service.get_application(application_id)


@router.post("/{application_id}/transition", response_model=ApplicationRead)
async def transition_application(
    application_id: UUID,
    request: StageTransitionRequest,
    actor: Actor = Depends(writers),
    db: AsyncSession = Depends(get_db),
):
    """
    Move an application to another stage or change its status.

    Rejected moves return a structured error and leave the application as it was.
    """
    service = PipelineService(db)
    application = await service.transition(application_id, request, actor=actor.actor_id)
    await db.commit()
    return application


@router.post("/{application_id}/complete-stage", response_model=ApplicationRead)
async def complete_stage(
    application_id: UUID,
    request: Optional[CompleteStageRequest] = None,
    actor: Actor = Depends(writers),
    db: AsyncSession = Depends(get_db),
):
    """Mark the current stage completed and advance to the next one."""
    service = PipelineService(db)
    application = await service.complete_stage(
        application_id,
        actor=actor.actor_id,
        notes=request.notes if request else None,
    )
    await db.commit()
    return application


@router.get("/{application_id}/history", response_model=List[StageHistoryRead])
async def get_application_history(
    application_id: UUID,
    _: Actor = Depends(readers),
    db: AsyncSession = Depends(get_db),
):
    """Full stage history for an application, oldest first."""
    service = PipelineService(db)
    return await service.get_history(application_id)


@router.get("/{application_id}/consistency", response_model=ConsistencyReport)
async def get_application_consistency(
    application_id: UUID,
    _: Actor = Depends(require_roles(Roles.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    """Replay the history and compare it with the stored pipeline state."""
    service = PipelineService(db)
    return await service.check_consistency(application_id)
