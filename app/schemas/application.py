"""
Application Pydantic schemas.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.funnel import FinalOutcome, OfferStatus, RejectionReason, Stage, StageStatus
from app.schemas.base import TimestampedRead


class ApplicationCreate(BaseModel):
    """Schema for registering a new application (résumé received)."""

    candidate_id: UUID
    job_id: UUID
    resume_url: Optional[str] = None
    source: Optional[str] = Field(default=None, max_length=255)


class ApplicationRead(TimestampedRead):
    """Schema for reading application data (API response)."""

    candidate_id: UUID
    job_id: UUID
    resume_url: Optional[str] = None
    source: Optional[str] = None
    current_stage: Stage
    current_stage_status: StageStatus
    offer_status: Optional[OfferStatus] = None
    final_outcome: Optional[FinalOutcome] = None
    final_rejection_reason: Optional[RejectionReason] = None
    version: int


class StageTransitionRequest(BaseModel):
    """
    Proposed pipeline change for one application.

    Only ``to_stage`` is required. ``status`` defaults to PENDING when entering
    a new stage and to the current status when staying in the same stage.
    """

    model_config = ConfigDict(extra="forbid")

    to_stage: Stage
    status: Optional[StageStatus] = None
    offer_status: Optional[OfferStatus] = None
    final_outcome: Optional[FinalOutcome] = None
    final_rejection_reason: Optional[RejectionReason] = None
    notes: Optional[str] = None


class CompleteStageRequest(BaseModel):
    """Request to mark the current stage completed and move on."""

    notes: Optional[str] = None
