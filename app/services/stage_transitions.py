"""
Stage transition rules for the hiring funnel.

Pure decision helpers used by the pipeline orchestrator. Nothing here touches
the database or raises for a rejected move: callers get a bool, a value or
None and turn that into an error themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional

from app.core.funnel import (
    STAGE_ORDER,
    FinalOutcome,
    OfferStatus,
    RejectionReason,
    Stage,
    StageStatus,
    stage_index,
)


_OFFER_STAGES: FrozenSet[Stage] = frozenset({Stage.OFFER, Stage.CLOSED})

_POW_REJECTION_REASONS: FrozenSet[RejectionReason] = frozenset({
    RejectionReason.TECH_SKILLS_INSUFFICIENT,
    RejectionReason.CULTURAL_MISFIT,
    RejectionReason.SALARY_EXPECTATION_ABOVE_RANGE,
    RejectionReason.LACK_OF_EXPERIENCE,
    RejectionReason.SOFT_SKILLS_MISMATCH,
    RejectionReason.NO_SHOW,
    RejectionReason.OTHER,
})

_CANDIDATE_REJECTION_REASONS: FrozenSet[RejectionReason] = frozenset({
    RejectionReason.ACCEPTED_OTHER_OFFER,
    RejectionReason.SALARY_TOO_LOW,
    RejectionReason.BENEFITS_INSUFFICIENT,
    RejectionReason.MODALITY_NOT_ACCEPTED,
    RejectionReason.LOCATION_ISSUE,
    RejectionReason.PERSONAL_REASON,
    RejectionReason.PROCESS_TAKES_TOO_LONG,
    RejectionReason.OTHER,
})

_OTHER_ONLY: FrozenSet[RejectionReason] = frozenset({RejectionReason.OTHER})

# One row per outcome; tests check every member of the enum is listed here.
REJECTION_REASONS_BY_OUTCOME: Dict[FinalOutcome, FrozenSet[RejectionReason]] = {
    FinalOutcome.HIRED: _OTHER_ONLY,
    FinalOutcome.REJECTED_BY_POW: _POW_REJECTION_REASONS,
    FinalOutcome.REJECTED_BY_CANDIDATE: _CANDIDATE_REJECTION_REASONS,
    FinalOutcome.ROLE_CANCELLED: _OTHER_ONLY,
    FinalOutcome.TALENT_POOL: _OTHER_ONLY,
}

# One row per offer status; None means the offer state implies no outcome.
OUTCOME_BY_OFFER_STATUS: Dict[OfferStatus, Optional[FinalOutcome]] = {
    OfferStatus.PENDING_TO_SEND: None,
    OfferStatus.SENT: None,
    OfferStatus.ACCEPTED: FinalOutcome.HIRED,
    OfferStatus.REJECTED_BY_CANDIDATE: FinalOutcome.REJECTED_BY_CANDIDATE,
    OfferStatus.WITHDRAWN_BY_POW: FinalOutcome.REJECTED_BY_POW,
    OfferStatus.EXPIRED: None,
}


def next_stage(stage: Stage) -> Optional[Stage]:
    """Stage right after ``stage``, or None when ``stage`` is terminal."""
    idx = stage_index(stage)
    if idx == len(STAGE_ORDER) - 1:
        return None
    return STAGE_ORDER[idx + 1]


def previous_stage(stage: Stage) -> Optional[Stage]:
    """Stage right before ``stage``, or None when ``stage`` is the first one."""
    idx = stage_index(stage)
    if idx == 0:
        return None
    return STAGE_ORDER[idx - 1]


def is_valid_transition(from_stage: Stage, to_stage: Stage) -> bool:
    """
    Decide whether moving from ``from_stage`` to ``to_stage`` is legal.

    Rules, first match wins:
        1. Closing is always allowed.
        2. Nothing leaves CLOSED.
        3. Otherwise only a single step forward or backward (or staying put
           to change status) is allowed.
    """
    if Stage(to_stage) is Stage.CLOSED:
        return True
    if Stage(from_stage) is Stage.CLOSED:
        return False
    return abs(stage_index(to_stage) - stage_index(from_stage)) <= 1


def requires_offer_status(stage: Stage) -> bool:
    return Stage(stage) in _OFFER_STAGES


def can_have_final_outcome(stage: Stage) -> bool:
    return Stage(stage) is Stage.CLOSED


def valid_rejection_reasons(outcome: Optional[FinalOutcome]) -> FrozenSet[RejectionReason]:
    """Rejection reasons accepted for ``outcome``; always contains OTHER."""
    if outcome is None:
        return _OTHER_ONLY
    return REJECTION_REASONS_BY_OUTCOME.get(FinalOutcome(outcome), _OTHER_ONLY)


def final_outcome_from_offer_status(offer_status: Optional[OfferStatus]) -> Optional[FinalOutcome]:
    """Outcome implied by a resolved offer, or None when nothing can be inferred."""
    if offer_status is None:
        return None
    return OUTCOME_BY_OFFER_STATUS.get(OfferStatus(offer_status))


@dataclass(frozen=True)
class ProjectedState:
    """Current-state fields as reconstructed from the stage history."""

    stage: Stage
    status: StageStatus
    offer_status: Optional[OfferStatus] = None
    final_outcome: Optional[FinalOutcome] = None
    final_rejection_reason: Optional[RejectionReason] = None


def _optional_enum(enum_cls, value):
    return enum_cls(value) if value is not None else None


def fold_history(entries: Iterable) -> Optional[ProjectedState]:
    """
    Replay chronologically ordered history entries into a ProjectedState.

    Each entry snapshots the auxiliary fields as they were after the change,
    so the last entry decides every field. Returns None for an empty history.
    """
    state: Optional[ProjectedState] = None
    for entry in entries:
        state = ProjectedState(
            stage=Stage(entry.to_stage),
            status=StageStatus(entry.status),
            offer_status=_optional_enum(OfferStatus, entry.offer_status),
            final_outcome=_optional_enum(FinalOutcome, entry.final_outcome),
            final_rejection_reason=_optional_enum(RejectionReason, entry.final_rejection_reason),
        )
    return state
