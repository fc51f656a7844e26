from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, UniqueConstraint, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column, relationship

from leadops.core.database import Base
from leadops.core.time import utcnow


class Branch(Base):
    __tablename__ = "directory_branch"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    staff: Mapped[list[StaffUser]] = relationship("leadops.directory.models.StaffUser", back_populates="branch")

    __table_args__ = (UniqueConstraint("name", name="uq_directory_branch_name"),)


class StaffUser(Base):
    __tablename__ = "directory_staff_user"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    branch_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("directory_branch.id", ondelete="SET NULL"),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    branch: Mapped[Branch | None] = relationship("leadops.directory.models.Branch", back_populates="staff")

    __table_args__ = (
        UniqueConstraint("email", name="uq_directory_staff_user_email"),
        Index("ix_directory_staff_user_branch", "branch_id"),
    )
