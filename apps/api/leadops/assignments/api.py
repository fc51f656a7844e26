from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from leadops.api.deps import get_current_caller
from leadops.api.responses import result_response
from leadops.assignments.schemas import AssignBulkRequest, AssignOneRequest
from leadops.assignments.service import assignment_engine
from leadops.core.database import get_db
from leadops.platform.security.context import Caller


router = APIRouter(prefix="/api/assignments", tags=["assignments"])


@router.post("/enquiries/{enquiry_id}")
def assign_enquiry(
    enquiry_id: uuid.UUID,
    payload: AssignOneRequest,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    result = assignment_engine.assign_one(db, caller, enquiry_id, payload)
    return result_response(request, result, success_status=status.HTTP_201_CREATED)


@router.post("/bulk")
def bulk_assign_enquiries(
    payload: AssignBulkRequest,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    result = assignment_engine.assign_bulk(db, caller, payload)
    return result_response(request, result, success_status=status.HTTP_201_CREATED)
