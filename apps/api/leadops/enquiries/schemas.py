from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from leadops.enquiries.lifecycle import ActivityType, EnquiryStatus, FollowUpStatus


class EnquiryCreate(BaseModel):
    candidate_name: str = Field(min_length=1, max_length=100)
    phone: str = Field(min_length=10, max_length=15)
    contact2: str | None = None
    email: str | None = None
    address: str | None = None
    enquiry_source: str = Field(min_length=1)
    branch_id: UUID
    preferred_course: str | None = None
    required_service: str | None = None
    notes: str | None = None


class EnquiryUpdate(BaseModel):
    # Status and the intake fields are deliberately absent.
    model_config = ConfigDict(extra="forbid")

    candidate_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, min_length=10, max_length=15)
    contact2: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None
    feedback: str | None = None


class EnquiryStatusUpdate(BaseModel):
    status: EnquiryStatus
    remarks: str | None = None


class DirectEnrollmentRequest(BaseModel):
    remarks: str | None = None


class FollowUpCreate(BaseModel):
    scheduled_at: datetime
    notes: str | None = None


class FollowUpUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: FollowUpStatus | None = None
    outcome: str | None = None
    notes: str | None = None
    rescheduled_at: datetime | None = None


class FollowUpFilters(BaseModel):
    statuses: list[FollowUpStatus] = Field(default_factory=list)
    overdue: bool = False
    scheduled_from: datetime | None = None
    scheduled_to: datetime | None = None
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)


class CallLogCreate(BaseModel):
    duration_seconds: int | None = Field(default=None, ge=0)
    outcome: str | None = None
    notes: str | None = None


class CallLogFilters(BaseModel):
    outcome: str | None = None
    called_from: datetime | None = None
    called_to: datetime | None = None
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)


class EnquiryFilters(BaseModel):
    search: str | None = None
    statuses: list[EnquiryStatus] = Field(default_factory=list)
    branch_id: UUID | None = None
    enquiry_source: str | None = None
    assigned_worker_id: UUID | None = None
    is_assigned: bool | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)


class EnquiryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    candidate_name: str
    phone: str
    contact2: str | None
    email: str | None
    address: str | None
    status: EnquiryStatus
    notes: str | None
    feedback: str | None
    branch_id: UUID
    enquiry_source: str
    preferred_course: str | None
    required_service: str | None
    assigned_worker_id: UUID | None
    created_by_user_id: UUID
    last_contact_date: datetime | None
    created_at: datetime
    updated_at: datetime


class EnquiryActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    enquiry_id: UUID
    type: ActivityType
    title: str
    description: str | None
    previous_status: EnquiryStatus | None
    new_status: EnquiryStatus | None
    status_remarks: str | None
    follow_up_id: UUID | None
    call_log_id: UUID | None
    created_by_user_id: UUID
    created_at: datetime


class FollowUpRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    enquiry_id: UUID
    scheduled_at: datetime
    notes: str | None
    status: FollowUpStatus
    outcome: str | None
    created_by_user_id: UUID
    created_at: datetime


class CallLogRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    enquiry_id: UUID
    call_date: datetime
    duration_seconds: int | None
    outcome: str | None
    notes: str | None
    created_by_user_id: UUID
    created_at: datetime


class EnquirySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    candidate_name: str
    phone: str
    status: EnquiryStatus
    branch_id: UUID
    assigned_worker_id: UUID | None


class FollowUpListItem(FollowUpRead):
    enquiry: EnquirySummary | None = None


class CallLogListItem(CallLogRead):
    enquiry: EnquirySummary | None = None
