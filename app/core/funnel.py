"""
Hiring funnel taxonomy.

Closed sets of stages, statuses, offer states, outcomes and rejection reasons,
plus the canonical stage order. Every ordering decision in the pipeline is
derived from STAGE_ORDER.
"""

from enum import Enum
from typing import Dict, Tuple


class Stage(str, Enum):
    """Recruiting stage an application is currently in."""

    CV_RECEIVED = "CV_RECEIVED"
    HR_REVIEW = "HR_REVIEW"
    HR_INTERVIEW = "HR_INTERVIEW"
    LEAD_INTERVIEW = "LEAD_INTERVIEW"
    EO_INTERVIEW = "EO_INTERVIEW"
    REFERENCES_CHECK = "REFERENCES_CHECK"
    SELECTED_FOR_OFFER = "SELECTED_FOR_OFFER"
    OFFER = "OFFER"
    CLOSED = "CLOSED"


class StageStatus(str, Enum):
    """Condition of the application within its current stage."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    DISCARDED_IN_STAGE = "DISCARDED_IN_STAGE"
    ON_HOLD = "ON_HOLD"


class OfferStatus(str, Enum):
    PENDING_TO_SEND = "PENDING_TO_SEND"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED_BY_CANDIDATE = "REJECTED_BY_CANDIDATE"
    WITHDRAWN_BY_POW = "WITHDRAWN_BY_POW"
    EXPIRED = "EXPIRED"


class FinalOutcome(str, Enum):
    HIRED = "HIRED"
    REJECTED_BY_POW = "REJECTED_BY_POW"
    REJECTED_BY_CANDIDATE = "REJECTED_BY_CANDIDATE"
    ROLE_CANCELLED = "ROLE_CANCELLED"
    TALENT_POOL = "TALENT_POOL"


class RejectionReason(str, Enum):
    # Company-side rejections (REJECTED_BY_POW)
    TECH_SKILLS_INSUFFICIENT = "TECH_SKILLS_INSUFFICIENT"
    CULTURAL_MISFIT = "CULTURAL_MISFIT"
    SALARY_EXPECTATION_ABOVE_RANGE = "SALARY_EXPECTATION_ABOVE_RANGE"
    LACK_OF_EXPERIENCE = "LACK_OF_EXPERIENCE"
    SOFT_SKILLS_MISMATCH = "SOFT_SKILLS_MISMATCH"
    NO_SHOW = "NO_SHOW"
    # Candidate-side rejections (REJECTED_BY_CANDIDATE)
    ACCEPTED_OTHER_OFFER = "ACCEPTED_OTHER_OFFER"
    SALARY_TOO_LOW = "SALARY_TOO_LOW"
    BENEFITS_INSUFFICIENT = "BENEFITS_INSUFFICIENT"
    MODALITY_NOT_ACCEPTED = "MODALITY_NOT_ACCEPTED"
    LOCATION_ISSUE = "LOCATION_ISSUE"
    PERSONAL_REASON = "PERSONAL_REASON"
    PROCESS_TAKES_TOO_LONG = "PROCESS_TAKES_TOO_LONG"
    # Shared
    OTHER = "OTHER"


STAGE_ORDER: Tuple[Stage, ...] = (
    Stage.CV_RECEIVED,
    Stage.HR_REVIEW,
    Stage.HR_INTERVIEW,
    Stage.LEAD_INTERVIEW,
    Stage.EO_INTERVIEW,
    Stage.REFERENCES_CHECK,
    Stage.SELECTED_FOR_OFFER,
    Stage.OFFER,
    Stage.CLOSED,
)

# Position lookup built from STAGE_ORDER; never maintained by hand
_STAGE_INDEX: Dict[Stage, int] = {stage: idx for idx, stage in enumerate(STAGE_ORDER)}


def stage_index(stage: Stage) -> int:
    """Return the position of ``stage`` in the canonical pipeline order."""
    return _STAGE_INDEX[Stage(stage)]


STAGE_LABELS: Dict[Stage, str] = {
    Stage.CV_RECEIVED: "CV received",
    Stage.HR_REVIEW: "HR review",
    Stage.HR_INTERVIEW: "HR interview",
    Stage.LEAD_INTERVIEW: "Lead interview",
    Stage.EO_INTERVIEW: "EO/CEO interview",
    Stage.REFERENCES_CHECK: "References check",
    Stage.SELECTED_FOR_OFFER: "Selected for offer",
    Stage.OFFER: "Offer",
    Stage.CLOSED: "Closed",
}

STAGE_STATUS_LABELS: Dict[StageStatus, str] = {
    StageStatus.PENDING: "Pending",
    StageStatus.IN_PROGRESS: "In progress",
    StageStatus.COMPLETED: "Completed",
    StageStatus.DISCARDED_IN_STAGE: "Discarded",
    StageStatus.ON_HOLD: "On hold",
}

OFFER_STATUS_LABELS: Dict[OfferStatus, str] = {
    OfferStatus.PENDING_TO_SEND: "Pending to send",
    OfferStatus.SENT: "Sent",
    OfferStatus.ACCEPTED: "Accepted",
    OfferStatus.REJECTED_BY_CANDIDATE: "Rejected by candidate",
    OfferStatus.WITHDRAWN_BY_POW: "Withdrawn by company",
    OfferStatus.EXPIRED: "Expired",
}

FINAL_OUTCOME_LABELS: Dict[FinalOutcome, str] = {
    FinalOutcome.HIRED: "Hired",
    FinalOutcome.REJECTED_BY_POW: "Rejected by company",
    FinalOutcome.REJECTED_BY_CANDIDATE: "Rejected by candidate",
    FinalOutcome.ROLE_CANCELLED: "Role cancelled",
    FinalOutcome.TALENT_POOL: "Talent pool",
}

REJECTION_REASON_LABELS: Dict[RejectionReason, str] = {
    RejectionReason.TECH_SKILLS_INSUFFICIENT: "Insufficient technical skills",
    RejectionReason.CULTURAL_MISFIT: "Cultural misfit",
    RejectionReason.SALARY_EXPECTATION_ABOVE_RANGE: "Salary expectation above range",
    RejectionReason.LACK_OF_EXPERIENCE: "Lack of experience",
    RejectionReason.SOFT_SKILLS_MISMATCH: "Soft skills mismatch",
    RejectionReason.NO_SHOW: "No show",
    RejectionReason.ACCEPTED_OTHER_OFFER: "Accepted another offer",
    RejectionReason.SALARY_TOO_LOW: "Salary too low",
    RejectionReason.BENEFITS_INSUFFICIENT: "Insufficient benefits",
    RejectionReason.MODALITY_NOT_ACCEPTED: "Work modality not accepted",
    RejectionReason.LOCATION_ISSUE: "Location issue",
    RejectionReason.PERSONAL_REASON: "Personal reason",
    RejectionReason.PROCESS_TAKES_TOO_LONG: "Process takes too long",
    RejectionReason.OTHER: "Other",
}
