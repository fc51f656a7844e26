"""create enquiries, follow-ups, call logs and activity trail

Revision ID: 202610190002
Revises: 202610190001
Create Date: 2026-10-19 00:02:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610190002"
down_revision: str | None = "202610190001"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "enquiry_enquiry",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("candidate_name", sa.String(length=100), nullable=False),
        sa.Column("phone", sa.String(length=15), nullable=False),
        sa.Column("contact2", sa.String(length=32), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="NEW"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("branch_id", sa.Uuid(), nullable=False),
        sa.Column("enquiry_source", sa.String(length=128), nullable=False),
        sa.Column("preferred_course", sa.String(length=255), nullable=True),
        sa.Column("required_service", sa.String(length=255), nullable=True),
        sa.Column("assigned_worker_id", sa.Uuid(), nullable=True),
        sa.Column("created_by_user_id", sa.Uuid(), nullable=False),
        sa.Column("last_contact_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["branch_id"], ["directory_branch.id"]),
        sa.ForeignKeyConstraint(["assigned_worker_id"], ["directory_staff_user.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["directory_staff_user.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_enquiry_enquiry_branch_status", "enquiry_enquiry", ["branch_id", "status"], unique=False)
    op.create_index("ix_enquiry_enquiry_assigned_worker", "enquiry_enquiry", ["assigned_worker_id"], unique=False)
    op.create_index("ix_enquiry_enquiry_created_at", "enquiry_enquiry", ["created_at"], unique=False)

    op.create_table(
        "enquiry_follow_up",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("enquiry_id", sa.Uuid(), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False, server_default="PENDING"),
        sa.Column("outcome", sa.String(length=255), nullable=True),
        sa.Column("created_by_user_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["enquiry_id"], ["enquiry_enquiry.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_enquiry_follow_up_enquiry", "enquiry_follow_up", ["enquiry_id"], unique=False)
    op.create_index(
        "ix_enquiry_follow_up_status_scheduled",
        "enquiry_follow_up",
        ["status", "scheduled_at"],
        unique=False,
    )

    op.create_table(
        "enquiry_call_log",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("enquiry_id", sa.Uuid(), nullable=False),
        sa.Column("call_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=True),
        sa.Column("outcome", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["enquiry_id"], ["enquiry_enquiry.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_enquiry_call_log_enquiry", "enquiry_call_log", ["enquiry_id"], unique=False)
    op.create_index("ix_enquiry_call_log_call_date", "enquiry_call_log", ["call_date"], unique=False)

    op.create_table(
        "enquiry_activity",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("enquiry_id", sa.Uuid(), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("previous_status", sa.String(length=32), nullable=True),
        sa.Column("new_status", sa.String(length=32), nullable=True),
        sa.Column("status_remarks", sa.Text(), nullable=True),
        sa.Column("follow_up_id", sa.Uuid(), nullable=True),
        sa.Column("call_log_id", sa.Uuid(), nullable=True),
        sa.Column("created_by_user_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["enquiry_id"], ["enquiry_enquiry.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["follow_up_id"], ["enquiry_follow_up.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["call_log_id"], ["enquiry_call_log.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_enquiry_activity_enquiry_created",
        "enquiry_activity",
        ["enquiry_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_enquiry_activity_enquiry_created", table_name="enquiry_activity")
    op.drop_table("enquiry_activity")
    op.drop_index("ix_enquiry_call_log_call_date", table_name="enquiry_call_log")
    op.drop_index("ix_enquiry_call_log_enquiry", table_name="enquiry_call_log")
    op.drop_table("enquiry_call_log")
    op.drop_index("ix_enquiry_follow_up_status_scheduled", table_name="enquiry_follow_up")
    op.drop_index("ix_enquiry_follow_up_enquiry", table_name="enquiry_follow_up")
    op.drop_table("enquiry_follow_up")
    op.drop_index("ix_enquiry_enquiry_created_at", table_name="enquiry_enquiry")
    op.drop_index("ix_enquiry_enquiry_assigned_worker", table_name="enquiry_enquiry")
    op.drop_index("ix_enquiry_enquiry_branch_status", table_name="enquiry_enquiry")
    op.drop_table("enquiry_enquiry")
