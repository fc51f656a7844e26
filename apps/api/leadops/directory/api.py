from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from leadops.api.deps import get_current_caller
from leadops.api.responses import result_response
from leadops.core.database import get_db
from leadops.directory.service import directory_service
from leadops.platform.security.context import Caller


router = APIRouter(prefix="/api/directory", tags=["directory"])


@router.get("/branches")
def list_branches(
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, directory_service.list_branches(db))


@router.get("/workers")
def list_assignable_workers(
    request: Request,
    branch_id: uuid.UUID | None = Query(default=None),
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, directory_service.list_assignable_workers(db, branch_id=branch_id))
