"""
Pipeline router - funnel taxonomy and dashboard counts.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import Actor, get_db, require_roles
from app.core.funnel import (
    FINAL_OUTCOME_LABELS,
    OFFER_STATUS_LABELS,
    REJECTION_REASON_LABELS,
    STAGE_LABELS,
    STAGE_ORDER,
    STAGE_STATUS_LABELS,
    FinalOutcome,
)
from app.core.permissions import Roles
from app.schemas.pipeline import FunnelTaxonomy, PipelineSummary, StageInfo
from app.services.pipeline_service import PipelineService
from app.services.stage_transitions import valid_rejection_reasons

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


@router.get("/stages", response_model=FunnelTaxonomy)
async def get_funnel_taxonomy():
    """Stages in canonical order plus labels for every pipeline enum."""
    return FunnelTaxonomy(
        stages=[
            StageInfo(stage=stage, label=STAGE_LABELS[stage], position=position)
            for position, stage in enumerate(STAGE_ORDER)
        ],
        statuses={key.value: label for key, label in STAGE_STATUS_LABELS.items()},
        offer_statuses={key.value: label for key, label in OFFER_STATUS_LABELS.items()},
        final_outcomes={key.value: label for key, label in FINAL_OUTCOME_LABELS.items()},
        rejection_reasons={
            outcome.value: {
                reason.value: REJECTION_REASON_LABELS[reason]
                for reason in sorted(valid_rejection_reasons(outcome), key=lambda r: r.value)
            }
            for outcome in FinalOutcome
        },
    )


@router.get("/summary", response_model=PipelineSummary)
async def get_pipeline_summary(
    job_id: Optional[UUID] = None,
    _: Actor = Depends(require_roles(*Roles.ALL)),
    db: AsyncSession = Depends(get_db),
):
    """Number of applications in each stage, per job."""
    service = PipelineService(db)
    return await service.stage_counts(job_id)
