"""
StageHistory repository - the append-only stage ledger.

Live pipeline code only ever calls ``append`` and the read helpers.
``backfill`` and ``set_changed_at`` exist for maintenance scripts.
"""

import uuid
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.funnel import Stage
from app.errors import (
    ApplicationNotFound,
    ConcurrentModification,
    HistoryValidationError,
    StaleFromStage,
)
from app.models.application import Application
from app.models.stage_history import StageHistoryEntry
from app.schemas.stage_history import StageHistoryCreate
from app.utils.time import utc_now


def _enum_value(value) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "value", value)


class StageHistoryRepository:
    """Repository for StageHistoryEntry operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_for(self, application_id: UUID) -> List[StageHistoryEntry]:
        """Full history for an application, oldest first."""
        result = await self.db.execute(
            select(StageHistoryEntry)
            .where(StageHistoryEntry.application_id == application_id)
            .order_by(StageHistoryEntry.changed_at.asc(), StageHistoryEntry.sequence.asc())
        )
        return list(result.scalars().all())

    async def last_entry(self, application_id: UUID) -> Optional[StageHistoryEntry]:
        result = await self.db.execute(
            select(StageHistoryEntry)
            .where(StageHistoryEntry.application_id == application_id)
            .order_by(StageHistoryEntry.changed_at.desc(), StageHistoryEntry.sequence.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count_for(self, application_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(StageHistoryEntry.id)).where(
                StageHistoryEntry.application_id == application_id
            )
        )
        return int(result.scalar_one())

    async def _next_sequence(self, application_id: UUID) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.max(StageHistoryEntry.sequence), 0)).where(
                StageHistoryEntry.application_id == application_id
            )
        )
        return int(result.scalar_one()) + 1

    def _build_row(self, entry: StageHistoryCreate, sequence: int) -> StageHistoryEntry:
        return StageHistoryEntry(
            id=uuid.uuid4(),
            application_id=entry.application_id,
            sequence=sequence,
            from_stage=_enum_value(entry.from_stage),
            to_stage=_enum_value(entry.to_stage),
            status=_enum_value(entry.status),
            offer_status=_enum_value(entry.offer_status),
            final_outcome=_enum_value(entry.final_outcome),
            final_rejection_reason=_enum_value(entry.final_rejection_reason),
            changed_by=entry.changed_by,
            changed_at=entry.changed_at or utc_now(),
            notes=entry.notes,
        )

    async def _flush_rows(self, application_id: UUID) -> None:
        try:
            await self.db.flush()
        except IntegrityError as exc:
            raise ConcurrentModification(
                "Stage history was written concurrently; reload the application and retry",
                {"application_id": str(application_id)},
            ) from exc

    async def append(self, entry: StageHistoryCreate) -> StageHistoryEntry:
        """
        Append one entry after the current tail.

        Raises:
            HistoryValidationError: to_stage missing, or a null from_stage on a
                non-empty ledger.
            StaleFromStage: from_stage differs from the application's current
                stage as seen inside this transaction.
            ConcurrentModification: another writer took the same sequence slot.
        """
        if entry.to_stage is None:
            raise HistoryValidationError(
                "to_stage is required",
                {"application_id": str(entry.application_id)},
            )

        current_stage = await self.db.scalar(
            select(Application.current_stage).where(Application.id == entry.application_id)
        )
        if current_stage is None:
            raise ApplicationNotFound(
                f"Application {entry.application_id} not found",
                {"application_id": str(entry.application_id)},
            )

        sequence = await self._next_sequence(entry.application_id)
        if entry.from_stage is None and sequence > 1:
            raise HistoryValidationError(
                "from_stage may only be empty for the first history entry",
                {"application_id": str(entry.application_id), "sequence": sequence},
            )
        if entry.from_stage is not None and Stage(entry.from_stage) != Stage(current_stage):
            raise StaleFromStage(
                f"from_stage {_enum_value(entry.from_stage)} does not match current stage {current_stage}",
                {
                    "application_id": str(entry.application_id),
                    "from_stage": _enum_value(entry.from_stage),
                    "current_stage": current_stage,
                },
            )

        row = self._build_row(entry, sequence)
        self.db.add(row)
        await self._flush_rows(entry.application_id)
        return row

    # --- maintenance only -------------------------------------------------

    async def application_ids_without_history(self) -> List[UUID]:
        """Applications that have no ledger rows at all, oldest first."""
        has_history = exists().where(StageHistoryEntry.application_id == Application.id)
        result = await self.db.execute(
            select(Application.id)
            .where(~has_history)
            .order_by(Application.created_at.asc())
        )
        return list(result.scalars().all())

    async def backfill(self, application_id: UUID, entries: Sequence[StageHistoryCreate]) -> List[StageHistoryEntry]:
        """
        Write a synthesized history for an application whose ledger is empty.

        Entries are stored as given, in order, without the from_stage checks
        that ``append`` performs.
        """
        if await self.count_for(application_id) > 0:
            raise HistoryValidationError(
                "Refusing to backfill an application that already has history",
                {"application_id": str(application_id)},
            )
        rows = [self._build_row(entry, sequence) for sequence, entry in enumerate(entries, start=1)]
        self.db.add_all(rows)
        await self._flush_rows(application_id)
        return rows

    async def set_changed_at(self, entry_ids: Sequence[UUID], changed_at: datetime) -> int:
        """Overwrite changed_at on the given entries. Returns rows touched."""
        if not entry_ids:
            return 0
        result = await self.db.execute(
            update(StageHistoryEntry)
            .where(StageHistoryEntry.id.in_(list(entry_ids)))
            .values(changed_at=changed_at)
            .execution_options(synchronize_session="fetch")
        )
        return int(result.rowcount or 0)
