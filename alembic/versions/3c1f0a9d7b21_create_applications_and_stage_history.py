"""create applications and stage_history

Revision ID: 3c1f0a9d7b21
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3c1f0a9d7b21"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "applications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("candidate_id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("resume_url", sa.Text(), nullable=True),
        sa.Column("source", sa.String(length=255), nullable=True),
        sa.Column("current_stage", sa.String(length=50), nullable=False, server_default="CV_RECEIVED"),
        sa.Column("current_stage_status", sa.String(length=50), nullable=False, server_default="PENDING"),
        sa.Column("offer_status", sa.String(length=50), nullable=True),
        sa.Column("final_outcome", sa.String(length=50), nullable=True),
        sa.Column("final_rejection_reason", sa.String(length=50), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_applications_candidate_id", "applications", ["candidate_id"])
    op.create_index("ix_applications_job_id", "applications", ["job_id"])
    op.create_index("ix_applications_current_stage", "applications", ["current_stage"])

    op.create_table(
        "stage_history",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "application_id",
            sa.Uuid(),
            sa.ForeignKey("applications.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("from_stage", sa.String(length=50), nullable=True),
        sa.Column("to_stage", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("offer_status", sa.String(length=50), nullable=True),
        sa.Column("final_outcome", sa.String(length=50), nullable=True),
        sa.Column("final_rejection_reason", sa.String(length=50), nullable=True),
        sa.Column("changed_by", sa.String(length=255), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.UniqueConstraint("application_id", "sequence", name="uq_stage_history_application_sequence"),
    )
    op.create_index(
        "ix_stage_history_application_changed_at",
        "stage_history",
        ["application_id", "changed_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_stage_history_application_changed_at", table_name="stage_history")
    op.drop_table("stage_history")
    op.drop_index("ix_applications_current_stage", table_name="applications")
    op.drop_index("ix_applications_job_id", table_name="applications")
    op.drop_index("ix_applications_candidate_id", table_name="applications")
    op.drop_table("applications")
