"""
StageHistory Pydantic schemas.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.core.funnel import FinalOutcome, OfferStatus, RejectionReason, Stage, StageStatus


class StageHistoryCreate(BaseModel):
    """One ledger entry to append. ``from_stage`` is None only for the first entry."""

    application_id: UUID
    from_stage: Optional[Stage] = None
    to_stage: Stage
    status: StageStatus
    offer_status: Optional[OfferStatus] = None
    final_outcome: Optional[FinalOutcome] = None
    final_rejection_reason: Optional[RejectionReason] = None
    changed_by: Optional[str] = None
    changed_at: Optional[datetime] = None
    notes: Optional[str] = None


class StageHistoryRead(BaseModel):
    """Schema for reading ledger entries (API response)."""

    id: UUID
    application_id: UUID
    sequence: int
    from_stage: Optional[Stage] = None
    to_stage: Stage
    status: StageStatus
    offer_status: Optional[OfferStatus] = None
    final_outcome: Optional[FinalOutcome] = None
    final_rejection_reason: Optional[RejectionReason] = None
    changed_by: Optional[str] = None
    changed_at: datetime
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)
