from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from leadops.enquiries.schemas import EnquiryRead
from leadops.job_orders.schemas import JobOrderRead


class AssignmentWindow(BaseModel):
    worker_id: UUID
    branch_id: UUID
    start_date: date | datetime
    end_date: date | datetime
    job_name: str
    description: str | None = None
    remarks: str | None = None


class AssignOneRequest(AssignmentWindow):
    pass


class AssignBulkRequest(AssignmentWindow):
    enquiry_ids: list[UUID] = Field(default_factory=list)


class AssignmentResult(BaseModel):
    enquiry: EnquiryRead
    job_order: JobOrderRead


class BulkAssignmentResult(BaseModel):
    count: int
    job_order_id: UUID
