from __future__ import annotations

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from leadops.core.config import get_settings
from leadops.platform.security.errors import ErrorKind

T = TypeVar("T")


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if limit > 0 else 0)


class ActionResult(BaseModel, Generic[T]):
    success: bool
    message: str
    error_kind: ErrorKind | None = None
    data: T | None = None
    pagination: Pagination | None = None


def ok(message: str, data: Any = None, pagination: Pagination | None = None) -> ActionResult[Any]:
    return ActionResult(success=True, message=message, data=data, pagination=pagination)


def fail(kind: ErrorKind, message: str) -> ActionResult[Any]:
    return ActionResult(success=False, message=message, error_kind=kind)


def access_denied(message: str = "Access denied") -> ActionResult[Any]:
    return fail(ErrorKind.ACCESS_DENIED, message)


def not_found(message: str) -> ActionResult[Any]:
    return fail(ErrorKind.NOT_FOUND, message)


def invalid_input(message: str) -> ActionResult[Any]:
    return fail(ErrorKind.INVALID_INPUT, message)


def internal_error(message: str) -> ActionResult[Any]:
    return fail(ErrorKind.INTERNAL, message)


def resolve_paging(page: int | None, limit: int | None) -> tuple[int, int]:
    settings = get_settings()
    resolved_page = page if page and page > 0 else 1
    resolved_limit = limit if limit and limit > 0 else settings.default_page_size
    return resolved_page, min(resolved_limit, settings.max_page_size)
