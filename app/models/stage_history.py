"""
StageHistoryEntry model.

Append-only log of every pipeline change for an application.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class StageHistoryEntry(Base):
    """
    stage_history table - one row per stage change.

    Rows are inserted by the pipeline and never updated; only maintenance
    tooling repairs them.
    """

    __tablename__ = "stage_history"
    __table_args__ = (
        # Two writers that raced past the version check still collide here
        UniqueConstraint("application_id", "sequence", name="uq_stage_history_application_sequence"),
        Index("ix_stage_history_application_changed_at", "application_id", "changed_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )

    # 1-based insertion order within the application; breaks changed_at ties
    sequence: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    from_stage: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    to_stage: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Snapshot of the application's auxiliary fields after this change
    offer_status: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    final_outcome: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    final_rejection_reason: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    # Actor id from the caller; None for system-driven changes
    changed_by: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
