"""
Application model.

A candidate's application to a job, carrying the denormalized pipeline state.
The stage history is the record of truth; these columns are its projection.
"""

import uuid
from typing import Optional

from sqlalchemy import Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.core.funnel import Stage, StageStatus
from app.models.base_model import TimestampedModel


class Application(TimestampedModel):
    """
    Application table - one row per candidate per job.
    """

    __tablename__ = "applications"

    # Candidates and jobs live in their own CRUD tables; only ids are kept here
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )

    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
    )

    resume_url: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    source: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    current_stage: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=Stage.CV_RECEIVED.value,
        server_default=Stage.CV_RECEIVED.value,
        index=True,
    )

    current_stage_status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=StageStatus.PENDING.value,
        server_default=StageStatus.PENDING.value,
    )

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

    # Optimistic lock: bumped on every pipeline write
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default="1",
    )
