"""
Stage history reconciliation - maintenance only.

Repairs ledgers that drifted from their applications because some older code
path wrote the projection without going through PipelineService. Nothing in
the request path calls this module; it is driven by scripts/maintenance.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.funnel import FinalOutcome, OfferStatus, RejectionReason, Stage, StageStatus
from app.models.application import Application
from app.repositories.application_repository import ApplicationRepository
from app.schemas.pipeline import ConsistencyReport, ReconciliationResult
from app.schemas.stage_history import StageHistoryCreate
from app.services.pipeline_service import build_consistency_report
from app.utils.time import ensure_utc

logger = logging.getLogger(__name__)

BACKFILL_NOTE = "History backfilled by maintenance"

# Initial entries written within this window of each other count as one write
INITIAL_ENTRY_WINDOW = timedelta(seconds=1)


def _optional(enum_cls, value):
    return enum_cls(value) if value is not None else None


def synthesize_history(application: Application) -> List[StageHistoryCreate]:
    """
    Best-effort minimal history for an application that has none.

    Always starts with null -> CV_RECEIVED (COMPLETED); if the application has
    moved on, a single CV_RECEIVED -> current_stage entry carries the current
    status and auxiliary fields. Everything is stamped with created_at and
    attributed to the system.
    """
    current_stage = Stage(application.current_stage)
    entries = [
        StageHistoryCreate(
            application_id=application.id,
            from_stage=None,
            to_stage=Stage.CV_RECEIVED,
            status=StageStatus.COMPLETED,
            changed_by=None,
            changed_at=application.created_at,
            notes=BACKFILL_NOTE,
        )
    ]
    if current_stage is Stage.CV_RECEIVED:
        entries[0].status = StageStatus(application.current_stage_status)
        return entries

    entries.append(
        StageHistoryCreate(
            application_id=application.id,
            from_stage=Stage.CV_RECEIVED,
            to_stage=current_stage,
            status=StageStatus(application.current_stage_status),
            offer_status=_optional(OfferStatus, application.offer_status),
            final_outcome=_optional(FinalOutcome, application.final_outcome),
            final_rejection_reason=_optional(RejectionReason, application.final_rejection_reason),
            changed_by=None,
            changed_at=application.created_at,
            notes=BACKFILL_NOTE,
        )
    )
    return entries


class HistoryReconciliationService:
    """Out-of-band repairs for the stage history ledger."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.applications = ApplicationRepository(db)
        self.history = self.applications.history

    async def backfill_missing_history(self, dry_run: bool = False) -> ReconciliationResult:
        """Synthesize history for every application whose ledger is empty."""
        result = ReconciliationResult(dry_run=dry_run)
        missing_ids = await self.history.application_ids_without_history()
        result.examined = len(missing_ids)

        for application_id in missing_ids:
            application = await self.applications.get_by_id(application_id)
            if application is None:
                result.skipped += 1
                continue

            entries = synthesize_history(application)
            result.application_ids.append(application_id)
            if dry_run:
                logger.info("Would backfill %d entries for application %s", len(entries), application_id)
                continue

            await self.history.backfill(application_id, entries)
            result.repaired += 1
            logger.info("Backfilled %d entries for application %s", len(entries), application_id)

        return result

    async def fix_initial_timestamps(self, dry_run: bool = False) -> ReconciliationResult:
        """
        Re-stamp the two creation entries with the application's created_at.

        Only touches applications whose null -> CV_RECEIVED and
        CV_RECEIVED -> HR_REVIEW entries were written together (within
        INITIAL_ENTRY_WINDOW) but away from created_at.
        """
        result = ReconciliationResult(dry_run=dry_run)

        for application in await self.applications.list_all():
            entries = await self.history.list_for(application.id)
            if not entries:
                continue
            result.examined += 1

            cv_received = next(
                (e for e in entries if e.from_stage is None and e.to_stage == Stage.CV_RECEIVED.value),
                None,
            )
            hr_review = next(
                (
                    e for e in entries
                    if e.from_stage == Stage.CV_RECEIVED.value and e.to_stage == Stage.HR_REVIEW.value
                ),
                None,
            )
            if cv_received is None or hr_review is None:
                result.skipped += 1
                continue

            created_at = ensure_utc(application.created_at)
            cv_at = ensure_utc(cv_received.changed_at)
            hr_at = ensure_utc(hr_review.changed_at)
            if abs(hr_at - cv_at) >= INITIAL_ENTRY_WINDOW or abs(cv_at - created_at) <= INITIAL_ENTRY_WINDOW:
                result.skipped += 1
                continue

            result.application_ids.append(application.id)
            if dry_run:
                logger.info("Would reset initial timestamps for application %s to %s", application.id, created_at)
                continue

            await self.history.set_changed_at([cv_received.id, hr_review.id], application.created_at)
            result.repaired += 1
            logger.info("Reset initial timestamps for application %s to %s", application.id, created_at)

        return result

    async def find_inconsistencies(self, limit: Optional[int] = None) -> List[ConsistencyReport]:
        """Reports for applications whose replayed ledger disagrees with their row."""
        reports: List[ConsistencyReport] = []
        for application in await self.applications.list_all():
            entries = await self.history.list_for(application.id)
            report = build_consistency_report(application, entries)
            if report.consistent:
                continue
            logger.warning(
                "Application %s ledger mismatch on %s",
                application.id,
                ", ".join(report.mismatched_fields),
            )
            reports.append(report)
            if limit is not None and len(reports) >= limit:
                break
        return reports
