from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from leadops.context import get_correlation_id
from leadops.core.results import ActionResult
from leadops.platform.security.errors import HTTP_STATUS_BY_ERROR_KIND, ErrorKind


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    details: Any
    correlation_id: str | None


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    payload = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        correlation_id=correlation_id,
    )
    return JSONResponse(status_code=status_code, content=payload.__dict__)


def result_response(
    request: Request,
    result: ActionResult[Any],
    *,
    success_status: int = status.HTTP_200_OK,
) -> JSONResponse:
    if result.success:
        return JSONResponse(status_code=success_status, content=jsonable_encoder(result.model_dump(mode="json")))

    kind = result.error_kind or ErrorKind.INTERNAL
    return error_response(
        request,
        status_code=HTTP_STATUS_BY_ERROR_KIND[kind],
        code=kind.value,
        message=result.message,
    )
