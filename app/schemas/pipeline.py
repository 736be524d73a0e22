"""
Pipeline reporting and maintenance schemas.
"""

from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.funnel import Stage, StageStatus


class StageInfo(BaseModel):
    stage: Stage
    label: str
    position: int


class FunnelTaxonomy(BaseModel):
    """Static description of the funnel, in canonical order."""

    stages: List[StageInfo]
    statuses: Dict[str, str]
    offer_statuses: Dict[str, str]
    final_outcomes: Dict[str, str]
    rejection_reasons: Dict[str, Dict[str, str]]


class JobStageCounts(BaseModel):
    job_id: UUID
    stage_counts: Dict[Stage, int]
    total: int


class PipelineSummary(BaseModel):
    """Applications per stage, grouped by job. Jobs without applications are omitted."""

    jobs: List[JobStageCounts] = Field(default_factory=list)


class ConsistencyReport(BaseModel):
    """Result of replaying an application's history against its stored state."""

    application_id: UUID
    consistent: bool
    history_length: int
    projected_stage: Stage
    projected_status: StageStatus
    replayed_stage: Optional[Stage] = None
    replayed_status: Optional[StageStatus] = None
    mismatched_fields: List[str] = Field(default_factory=list)


class ReconciliationResult(BaseModel):
    """Outcome of a maintenance pass over the ledger."""

    dry_run: bool
    examined: int = 0
    repaired: int = 0
    skipped: int = 0
    application_ids: List[UUID] = Field(default_factory=list)
