from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from leadops.api.deps import get_current_caller
from leadops.assignments.api import router as assignments_router
from leadops.core.config import get_settings
from leadops.core.rbac import Role
from leadops.directory.api import router as directory_router
from leadops.enquiries.api import call_logs_router, follow_ups_router, router as enquiries_router
from leadops.job_orders.api import job_leads_router, router as job_orders_router
from leadops.metrics import generate_metrics_payload, metrics_content_type
from leadops.notifications.api import router as notifications_router
from leadops.platform.security.context import Caller

router = APIRouter()
router.include_router(directory_router)
router.include_router(enquiries_router)
router.include_router(follow_ups_router)
router.include_router(call_logs_router)
router.include_router(assignments_router)
router.include_router(job_orders_router)
router.include_router(job_leads_router)
router.include_router(notifications_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "environment": settings.app_env,
    }


@router.get("/me", tags=["auth"])
def me(caller: Caller = Depends(get_current_caller)) -> dict[str, str | None]:
    return {
        "sub": str(caller.user_id),
        "role": caller.role.value,
        "branch": str(caller.branch_id) if caller.branch_id else None,
    }


@router.get("/metrics", tags=["system"])
def metrics(caller: Caller = Depends(get_current_caller)) -> Response:
    settings = get_settings()
    if not settings.metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    if caller.role is not Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
