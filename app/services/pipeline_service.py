"""
Pipeline orchestration service.

The only entry point that moves applications through the hiring funnel. Each
call validates the proposed change, appends exactly one ledger entry and
updates the application's projected state; both writes share the caller's
transaction, so the caller commits on success and rolls back on any error.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.funnel import (
    STAGE_ORDER,
    FinalOutcome,
    OfferStatus,
    RejectionReason,
    Stage,
    StageStatus,
)
from app.errors import (
    ApplicationNotFound,
    FieldNotAllowed,
    FinalOutcomeLocked,
    InvalidRejectionReason,
    InvalidTransition,
    MissingOfferStatus,
    PipelineError,
)
from app.models.application import Application
from app.models.stage_history import StageHistoryEntry
from app.repositories.application_repository import ApplicationRepository, ObservedState
from app.schemas.application import ApplicationCreate, StageTransitionRequest
from app.schemas.pipeline import ConsistencyReport, JobStageCounts, PipelineSummary
from app.schemas.stage_history import StageHistoryCreate
from app.services.stage_transitions import (
    can_have_final_outcome,
    final_outcome_from_offer_status,
    fold_history,
    is_valid_transition,
    next_stage,
    requires_offer_status,
    valid_rejection_reasons,
)
from app.utils.time import utc_now

logger = logging.getLogger(__name__)

CV_RECEIVED_NOTE = "CV received"
HR_REVIEW_NOTE = "Automatic advance to HR review"
AUTO_ADVANCE_NOTE = "Automatic advance to next stage"

_PROJECTED_FIELDS = (
    ("current_stage", "stage"),
    ("current_stage_status", "status"),
    ("offer_status", "offer_status"),
    ("final_outcome", "final_outcome"),
    ("final_rejection_reason", "final_rejection_reason"),
)


def _optional(enum_cls, value):
    return enum_cls(value) if value is not None else None


def _value(member) -> Optional[str]:
    return member.value if member is not None else None


def allowed_targets(stage: Stage) -> List[Stage]:
    """Stages reachable from ``stage`` in one transition, in canonical order."""
    return [candidate for candidate in STAGE_ORDER if is_valid_transition(stage, candidate)]


def build_consistency_report(
    application: Application,
    entries: Iterable[StageHistoryEntry],
) -> ConsistencyReport:
    """Replay ``entries`` and compare the result with the stored projection."""
    entries = list(entries)
    replayed = fold_history(entries)

    report = ConsistencyReport(
        application_id=application.id,
        consistent=True,
        history_length=len(entries),
        projected_stage=Stage(application.current_stage),
        projected_status=StageStatus(application.current_stage_status),
    )
    if replayed is None:
        report.consistent = False
        report.mismatched_fields = ["history"]
        return report

    report.replayed_stage = replayed.stage
    report.replayed_status = replayed.status
    for column, attr in _PROJECTED_FIELDS:
        stored = getattr(application, column)
        replayed_value = _value(getattr(replayed, attr))
        if stored != replayed_value:
            report.mismatched_fields.append(column)
    report.consistent = not report.mismatched_fields
    return report


class PipelineService:
    """Service for hiring pipeline business logic."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = ApplicationRepository(db)
        self.history = self.repository.history

    async def get_application(self, application_id: UUID) -> Application:
        application = await self.repository.get_by_id(application_id)
        if application is None:
            raise ApplicationNotFound(
                f"Application {application_id} not found",
                {"application_id": str(application_id)},
            )
        return application

    async def list_applications(
        self,
        limit: int = 50,
        offset: int = 0,
        job_id: Optional[UUID] = None,
        stage: Optional[Stage] = None,
    ) -> List[Application]:
        return await self.repository.list(limit=limit, offset=offset, job_id=job_id, stage=stage)

    async def create_application(self, data: ApplicationCreate) -> Application:
        """
        Register a received résumé.

        Writes null -> CV_RECEIVED (COMPLETED), then moves the application to
        HR_REVIEW (PENDING) through the regular transition path. Both entries
        carry the application's creation time and no actor.
        """
        created_at = utc_now()
        application = await self.repository.create_with_history(
            data,
            created_at=created_at,
            notes=CV_RECEIVED_NOTE,
        )
        application = await self.transition(
            application.id,
            StageTransitionRequest(
                to_stage=Stage.HR_REVIEW,
                status=StageStatus.PENDING,
                notes=HR_REVIEW_NOTE,
            ),
            actor=None,
            changed_at=created_at,
        )
        logger.info(
            "Created application %s for candidate %s on job %s",
            application.id,
            application.candidate_id,
            application.job_id,
        )
        return application

    async def transition(
        self,
        application_id: UUID,
        change: StageTransitionRequest,
        actor: Optional[str] = None,
        changed_at: Optional[datetime] = None,
    ) -> Application:
        """
        Apply one pipeline change.

        Raises:
            ApplicationNotFound, InvalidTransition, FieldNotAllowed,
            MissingOfferStatus, FinalOutcomeLocked, InvalidRejectionReason,
            ConcurrentModification
        """
        application = await self.repository.get_by_id(application_id, fresh=True)
        if application is None:
            raise ApplicationNotFound(
                f"Application {application_id} not found",
                {"application_id": str(application_id)},
            )
        observed = ObservedState.from_application(application)

        try:
            values, entry = self._plan_transition(application, observed, change, actor, changed_at)
            updated = await self.repository.apply_transition(application_id, observed, values, entry)
        except PipelineError as exc:
            logger.warning(
                "Rejected transition for application %s: %s -> %s (%s)",
                application_id,
                observed.stage.value,
                Stage(change.to_stage).value,
                exc.code,
            )
            raise

        logger.info(
            "Application %s moved %s/%s -> %s/%s by %s",
            application_id,
            observed.stage.value,
            observed.status.value,
            updated.current_stage,
            updated.current_stage_status,
            actor or "system",
        )
        return updated

    def _plan_transition(
        self,
        application: Application,
        observed: ObservedState,
        change: StageTransitionRequest,
        actor: Optional[str],
        changed_at: Optional[datetime],
    ) -> Tuple[Dict[str, Any], StageHistoryCreate]:
        """Validate ``change`` against ``observed`` and build the writes for it."""
        to_stage = Stage(change.to_stage)

        if not is_valid_transition(observed.stage, to_stage):
            raise InvalidTransition(
                f"Cannot move application from {observed.stage.value} to {to_stage.value}",
                {
                    "from_stage": observed.stage.value,
                    "to_stage": to_stage.value,
                    "allowed": [stage.value for stage in allowed_targets(observed.stage)],
                },
            )

        if change.offer_status is not None and not requires_offer_status(to_stage):
            raise FieldNotAllowed(
                f"offer_status cannot be set at stage {to_stage.value}",
                {"field": "offer_status", "to_stage": to_stage.value},
            )
        if change.final_outcome is not None and not can_have_final_outcome(to_stage):
            raise FieldNotAllowed(
                f"final_outcome cannot be set at stage {to_stage.value}",
                {"field": "final_outcome", "to_stage": to_stage.value},
            )

        offer_status: Optional[OfferStatus] = None
        if requires_offer_status(to_stage):
            offer_status = change.offer_status or _optional(OfferStatus, application.offer_status)
            if offer_status is None:
                raise MissingOfferStatus(
                    f"offer_status is required for stage {to_stage.value}",
                    {"to_stage": to_stage.value},
                )

        existing_outcome = _optional(FinalOutcome, application.final_outcome)
        final_outcome: Optional[FinalOutcome] = None
        if can_have_final_outcome(to_stage):
            final_outcome = change.final_outcome
            if final_outcome is None and change.offer_status is not None:
                final_outcome = final_outcome_from_offer_status(change.offer_status)
            if existing_outcome is not None:
                if final_outcome is not None and final_outcome != existing_outcome:
                    raise FinalOutcomeLocked(
                        f"final_outcome is already {existing_outcome.value}",
                        {
                            "final_outcome": existing_outcome.value,
                            "requested": final_outcome.value,
                        },
                    )
                final_outcome = existing_outcome

        rejection_reason: Optional[RejectionReason] = change.final_rejection_reason
        if rejection_reason is not None:
            if final_outcome is None:
                raise InvalidRejectionReason(
                    "final_rejection_reason requires a final outcome",
                    {"final_rejection_reason": rejection_reason.value},
                )
            allowed = valid_rejection_reasons(final_outcome)
            if rejection_reason not in allowed:
                raise InvalidRejectionReason(
                    f"{rejection_reason.value} is not a valid reason for {final_outcome.value}",
                    {
                        "final_outcome": final_outcome.value,
                        "final_rejection_reason": rejection_reason.value,
                        "allowed": sorted(reason.value for reason in allowed),
                    },
                )
        elif final_outcome is not None:
            rejection_reason = _optional(RejectionReason, application.final_rejection_reason)

        if change.status is not None:
            status = StageStatus(change.status)
        elif to_stage == observed.stage:
            status = observed.status
        else:
            status = StageStatus.PENDING

        values = {
            "current_stage": to_stage.value,
            "current_stage_status": status.value,
            "offer_status": _value(offer_status),
            "final_outcome": _value(final_outcome),
            "final_rejection_reason": _value(rejection_reason),
        }
        entry = StageHistoryCreate(
            application_id=application.id,
            from_stage=observed.stage,
            to_stage=to_stage,
            status=status,
            offer_status=offer_status,
            final_outcome=final_outcome,
            final_rejection_reason=rejection_reason,
            changed_by=actor,
            changed_at=changed_at or utc_now(),
            notes=change.notes,
        )
        return values, entry

    async def complete_stage(
        self,
        application_id: UUID,
        actor: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Application:
        """
        Mark the current stage COMPLETED and, unless the next stage is CLOSED,
        move into it as PENDING. Two transitions, two ledger entries. Entering
        OFFER this way starts the offer at PENDING_TO_SEND.
        """
        application = await self.get_application(application_id)
        current = Stage(application.current_stage)
        if current is Stage.CLOSED:
            raise InvalidTransition(
                "Closed applications have no stage to complete",
                {"from_stage": current.value},
            )

        application = await self.transition(
            application_id,
            StageTransitionRequest(to_stage=current, status=StageStatus.COMPLETED, notes=notes),
            actor=actor,
        )

        upcoming = next_stage(current)
        if upcoming is None or upcoming is Stage.CLOSED:
            return application

        # An offer entered automatically has not been sent yet
        offer_status = OfferStatus.PENDING_TO_SEND if requires_offer_status(upcoming) else None
        return await self.transition(
            application_id,
            StageTransitionRequest(
                to_stage=upcoming,
                status=StageStatus.PENDING,
                offer_status=offer_status,
                notes=AUTO_ADVANCE_NOTE,
            ),
            actor=actor,
        )

    async def get_history(self, application_id: UUID) -> List[StageHistoryEntry]:
        """Ledger for an application, oldest first."""
        await self.get_application(application_id)
        return await self.history.list_for(application_id)

    async def check_consistency(self, application_id: UUID) -> ConsistencyReport:
        application = await self.get_application(application_id)
        entries = await self.history.list_for(application_id)
        return build_consistency_report(application, entries)

    async def stage_counts(self, job_id: Optional[UUID] = None) -> PipelineSummary:
        """Applications per stage for each job that has any."""
        by_job: Dict[UUID, Dict[Stage, int]] = {}
        for row_job_id, stage, count in await self.repository.count_by_job_and_stage(job_id):
            counts = by_job.setdefault(row_job_id, {known: 0 for known in STAGE_ORDER})
            counts[Stage(stage)] += count

        jobs = [
            JobStageCounts(job_id=key, stage_counts=counts, total=sum(counts.values()))
            for key, counts in by_job.items()
        ]
        jobs.sort(key=lambda item: (-item.total, str(item.job_id)))
        return PipelineSummary(jobs=jobs)
