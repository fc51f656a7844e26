from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from leadops.api.deps import get_current_caller
from leadops.api.responses import result_response
from leadops.assignments.service import assignment_engine
from leadops.core.database import get_db
from leadops.job_orders.schemas import JobLeadStatusUpdate, JobOrderCreate, JobOrderFilters, JobOrderReassign
from leadops.job_orders.service import job_order_service
from leadops.platform.security.context import Caller


router = APIRouter(prefix="/api/job-orders", tags=["job-orders"])
job_leads_router = APIRouter(prefix="/api/job-leads", tags=["job-orders"])


@router.get("")
def list_job_orders(
    request: Request,
    manager_id: uuid.UUID | None = Query(default=None),
    branch_id: uuid.UUID | None = Query(default=None),
    pending_only: bool = Query(default=False),
    completed_only: bool = Query(default=False),
    due_only: bool = Query(default=False),
    search: str | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    filters = JobOrderFilters(
        manager_id=manager_id,
        branch_id=branch_id,
        pending_only=pending_only,
        completed_only=completed_only,
        due_only=due_only,
        search=search,
        page=page,
        limit=limit,
    )
    return result_response(request, job_order_service.list_job_orders(db, caller, filters))


@router.post("")
def create_job_order(
    payload: JobOrderCreate,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    result = assignment_engine.create_job_order(db, caller, payload)
    return result_response(request, result, success_status=status.HTTP_201_CREATED)


@router.get("/{job_order_id}")
def get_job_order(
    job_order_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, job_order_service.get_job_order(db, caller, job_order_id))


@router.get("/{job_order_id}/progress")
def get_job_order_progress(
    job_order_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, job_order_service.get_job_order_progress(db, caller, job_order_id))


@router.post("/{job_order_id}/reassign")
def reassign_job_order(
    job_order_id: uuid.UUID,
    payload: JobOrderReassign,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    result = job_order_service.reassign_job_order(db, caller, job_order_id, payload.new_manager_id)
    return result_response(request, result)


@router.delete("/{job_order_id}")
def delete_job_order(
    job_order_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, job_order_service.delete_job_order(db, caller, job_order_id))


@job_leads_router.patch("/{job_lead_id}/status")
def set_job_lead_status(
    job_lead_id: uuid.UUID,
    payload: JobLeadStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, job_order_service.set_job_lead_status(db, caller, job_lead_id, payload.status))
