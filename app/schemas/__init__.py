"""
Schemas package.

Import all schemas here for easy access.
"""

from app.schemas.application import (
    ApplicationCreate,
    ApplicationRead,
    CompleteStageRequest,
    StageTransitionRequest,
)
from app.schemas.stage_history import StageHistoryCreate, StageHistoryRead
from app.schemas.pipeline import (
    ConsistencyReport,
    FunnelTaxonomy,
    JobStageCounts,
    PipelineSummary,
    ReconciliationResult,
    StageInfo,
)

__all__ = [
    # Application
    "ApplicationCreate", "ApplicationRead", "StageTransitionRequest", "CompleteStageRequest",
    # StageHistory
    "StageHistoryCreate", "StageHistoryRead",
    # Pipeline
    "StageInfo", "FunnelTaxonomy", "JobStageCounts", "PipelineSummary",
    "ConsistencyReport", "ReconciliationResult",
]
