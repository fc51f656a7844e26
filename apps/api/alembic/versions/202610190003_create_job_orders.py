"""create job orders and job leads

Revision ID: 202610190003
Revises: 202610190002
Create Date: 2026-10-19 00:03:00
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "202610190003"
down_revision: str | None = "202610190002"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "job_order",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_code", sa.String(length=64), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column("manager_id", sa.Uuid(), nullable=False),
        sa.Column("assigner_id", sa.Uuid(), nullable=False),
        sa.Column("branch_id", sa.Uuid(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("start_date <= end_date", name="ck_job_order_date_window"),
        sa.ForeignKeyConstraint(["manager_id"], ["directory_staff_user.id"]),
        sa.ForeignKeyConstraint(["assigner_id"], ["directory_staff_user.id"]),
        sa.ForeignKeyConstraint(["branch_id"], ["directory_branch.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_job_order_branch", "job_order", ["branch_id"], unique=False)
    op.create_index("ix_job_order_manager", "job_order", ["manager_id"], unique=False)
    op.create_index("ix_job_order_end_date", "job_order", ["end_date"], unique=False)

    op.create_table(
        "job_lead",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("lead_id", sa.Uuid(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="PENDING"),
        sa.Column("assigner_id", sa.Uuid(), nullable=False),
        sa.Column("assignee_id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["job_order.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["lead_id"], ["enquiry_enquiry.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("lead_id", name="uq_job_lead_lead"),
    )
    op.create_index("ix_job_lead_job_status", "job_lead", ["job_id", "status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_job_lead_job_status", table_name="job_lead")
    op.drop_table("job_lead")
    op.drop_index("ix_job_order_end_date", table_name="job_order")
    op.drop_index("ix_job_order_manager", table_name="job_order")
    op.drop_index("ix_job_order_branch", table_name="job_order")
    op.drop_table("job_order")
