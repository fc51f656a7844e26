from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leadops.core.database import Base
from leadops.core.time import utcnow


class JobOrder(Base):
    __tablename__ = "job_order"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    manager_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("directory_staff_user.id"),
        nullable=False,
    )
    assigner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("directory_staff_user.id"),
        nullable=False,
    )
    branch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("directory_branch.id"),
        nullable=False,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    job_leads: Mapped[list[JobLead]] = relationship(
        "leadops.job_orders.models.JobLead",
        back_populates="job_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="leadops.job_orders.models.JobLead.created_at",
    )

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_job_order_date_window"),
        Index("ix_job_order_branch", "branch_id"),
        Index("ix_job_order_manager", "manager_id"),
        Index("ix_job_order_end_date", "end_date"),
    )


class JobLead(Base):
    __tablename__ = "job_lead"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("job_order.id", ondelete="CASCADE"),
        nullable=False,
    )
    lead_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("enquiry_enquiry.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="PENDING", server_default="PENDING")
    assigner_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    assignee_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    job_order: Mapped[JobOrder] = relationship("leadops.job_orders.models.JobOrder", back_populates="job_leads")

    __table_args__ = (
        # An enquiry sits in at most one job order at a time.
        UniqueConstraint("lead_id", name="uq_job_lead_lead"),
        Index("ix_job_lead_job_status", "job_id", "status"),
    )
