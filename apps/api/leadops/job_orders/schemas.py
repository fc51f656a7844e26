from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from leadops.directory.schemas import StaffUserSummary
from leadops.enquiries.lifecycle import EnquiryStatus


class JobLeadStatus(StrEnum):
    PENDING = "PENDING"
    CLOSED = "CLOSED"


class JobOrderProgress(BaseModel):
    total: int
    closed: int
    percentage: int


class JobOrderFilters(BaseModel):
    manager_id: UUID | None = None
    branch_id: UUID | None = None
    pending_only: bool = False
    completed_only: bool = False
    due_only: bool = False
    search: str | None = None
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)


class JobOrderCreate(BaseModel):
    manager_id: UUID
    branch_id: UUID | None = None
    start_date: date | datetime
    end_date: date | datetime
    enquiry_ids: list[UUID] = Field(min_length=1)
    name: str
    description: str | None = None
    remarks: str | None = None


class JobOrderReassign(BaseModel):
    new_manager_id: UUID


class JobLeadStatusUpdate(BaseModel):
    status: JobLeadStatus


class JobLeadEnquiry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    candidate_name: str
    phone: str
    email: str | None
    status: EnquiryStatus


class JobLeadRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    job_id: UUID
    lead_id: UUID
    status: JobLeadStatus
    assigner_id: UUID
    assignee_id: UUID
    created_at: datetime
    updated_at: datetime


class JobLeadDetail(JobLeadRead):
    lead: JobLeadEnquiry | None = None


class JobOrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    job_code: str | None
    name: str
    description: str | None
    remarks: str | None
    manager_id: UUID
    assigner_id: UUID
    branch_id: UUID
    start_date: date
    end_date: date
    created_at: datetime
    updated_at: datetime


class JobOrderSummary(JobOrderRead):
    manager: StaffUserSummary | None = None
    progress: JobOrderProgress


class JobOrderDetail(JobOrderSummary):
    job_leads: list[JobLeadDetail] = Field(default_factory=list)
