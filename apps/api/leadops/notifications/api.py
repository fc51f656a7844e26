from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from leadops.api.deps import get_current_caller
from leadops.api.responses import result_response
from leadops.core.database import get_db
from leadops.notifications.service import notification_service
from leadops.platform.security.context import Caller


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
def list_notifications(
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, notification_service.list_notifications(db, caller))


@router.post("/read-all")
def mark_all_notifications_read(
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, notification_service.mark_all_read(db, caller))


@router.post("/{notification_id}/read")
def mark_notification_read(
    notification_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    caller: Caller = Depends(get_current_caller),
) -> JSONResponse:
    return result_response(request, notification_service.mark_read(db, caller, notification_id))
