from __future__ import annotations

import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from leadops.api.deps import get_current_caller
from leadops.api.responses import result_response
from leadops.core.database import get_db
from leadops.enquiries.lifecycle import ActivityType, EnquiryStatus, FollowUpStatus
from leadops.enquiries.schemas import (
    CallLogCreate,
    CallLogFilters,
    DirectEnrollmentRequest,
    EnquiryCreate,
    EnquiryFilters,
    EnquiryStatusUpdate,
    EnquiryUpdate,
    FollowUpCreate,
    FollowUpFilters,
    FollowUpUpdate,
)
from leadops.enquiries.service import enquiry_service
from leadops.platform.security.context import Caller


router = APIRouter(prefix="/api/enquiries", tags=["enquiries"])
follow_ups_router = APIRouter(prefix="/api/follow-ups", tags=["enquiries"])
call_logs_router = APIRouter(prefix="/api/call-logs", tags=["enquiries"])


@router.post("")
def create_enquiry(
    payload: EnquiryCreate,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    result = enquiry_service.create_enquiry(db, caller, payload)
    return result_response(request, result, success_status=status.HTTP_201_CREATED)


@router.get("")
def list_enquiries(
    request: Request,
    search: str | None = Query(default=None),
    statuses: list[EnquiryStatus] | None = Query(default=None, alias="status"),
    branch_id: uuid.UUID | None = Query(default=None),
    enquiry_source: str | None = Query(default=None),
    assigned_worker_id: uuid.UUID | None = Query(default=None),
    is_assigned: bool | None = Query(default=None),
    created_from: datetime | None = Query(default=None),
    created_to: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    filters = EnquiryFilters(
        search=search,
        statuses=statuses or [],
        branch_id=branch_id,
        enquiry_source=enquiry_source,
        assigned_worker_id=assigned_worker_id,
        is_assigned=is_assigned,
        created_from=created_from,
        created_to=created_to,
        page=page,
        limit=limit,
    )
    return result_response(request, enquiry_service.list_enquiries(db, caller, filters))


@router.get("/{enquiry_id}")
def get_enquiry(
    enquiry_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, enquiry_service.get_enquiry(db, caller, enquiry_id))


@router.patch("/{enquiry_id}")
def update_enquiry(
    enquiry_id: uuid.UUID,
    payload: EnquiryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, enquiry_service.update_enquiry(db, caller, enquiry_id, payload))


@router.delete("/{enquiry_id}")
def delete_enquiry(
    enquiry_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, enquiry_service.delete_enquiry(db, caller, enquiry_id))


@router.post("/{enquiry_id}/status")
def update_enquiry_status(
    enquiry_id: uuid.UUID,
    payload: EnquiryStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    result = enquiry_service.update_status_with_activity(db, caller, enquiry_id, payload.status, payload.remarks)
    return result_response(request, result)


@router.post("/{enquiry_id}/enroll")
def enroll_enquiry_direct(
    enquiry_id: uuid.UUID,
    payload: DirectEnrollmentRequest,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, enquiry_service.enroll_direct(db, caller, enquiry_id, payload.remarks))


@router.post("/{enquiry_id}/follow-ups")
def create_follow_up(
    enquiry_id: uuid.UUID,
    payload: FollowUpCreate,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    result = enquiry_service.create_follow_up(db, caller, enquiry_id, payload)
    return result_response(request, result, success_status=status.HTTP_201_CREATED)


@router.post("/{enquiry_id}/call-logs")
def create_call_log(
    enquiry_id: uuid.UUID,
    payload: CallLogCreate,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    result = enquiry_service.create_call_log(db, caller, enquiry_id, payload)
    return result_response(request, result, success_status=status.HTTP_201_CREATED)


@router.get("/{enquiry_id}/activities")
def list_enquiry_activities(
    enquiry_id: uuid.UUID,
    request: Request,
    types: list[ActivityType] | None = Query(default=None, alias="type"),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    result = enquiry_service.list_activities(db, caller, enquiry_id, types=types, page=page, limit=limit)
    return result_response(request, result)


@follow_ups_router.get("")
def list_follow_ups(
    request: Request,
    statuses: list[FollowUpStatus] | None = Query(default=None, alias="status"),
    overdue: bool = Query(default=False),
    scheduled_from: datetime | None = Query(default=None),
    scheduled_to: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    filters = FollowUpFilters(
        statuses=statuses or [],
        overdue=overdue,
        scheduled_from=scheduled_from,
        scheduled_to=scheduled_to,
        page=page,
        limit=limit,
    )
    return result_response(request, enquiry_service.list_follow_ups(db, caller, filters))


@follow_ups_router.patch("/{follow_up_id}")
def update_follow_up(
    follow_up_id: uuid.UUID,
    payload: FollowUpUpdate,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, enquiry_service.update_follow_up(db, caller, follow_up_id, payload))


@follow_ups_router.delete("/{follow_up_id}")
def delete_follow_up(
    follow_up_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, enquiry_service.delete_follow_up(db, caller, follow_up_id))


@call_logs_router.get("")
def list_call_logs(
    request: Request,
    outcome: str | None = Query(default=None),
    called_from: datetime | None = Query(default=None),
    called_to: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    filters = CallLogFilters(outcome=outcome, called_from=called_from, called_to=called_to, page=page, limit=limit)
    return result_response(request, enquiry_service.list_call_logs(db, caller, filters))


@call_logs_router.delete("/{call_log_id}")
def delete_call_log(
    call_log_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, enquiry_service.delete_call_log(db, caller, call_log_id))
