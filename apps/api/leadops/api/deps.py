from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, Request, status

from leadops.context import get_correlation_id, set_actor_id
from leadops.core.auth import AuthUser, get_current_user
from leadops.core.rbac import parse_role
from leadops.platform.security.context import Caller


def _parse_uuid(raw: str | None) -> uuid.UUID | None:
    if not raw:
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        return None


async def get_current_caller(request: Request, auth_user: AuthUser = Depends(get_current_user)) -> Caller:
    role = parse_role(auth_user.role)
    user_id = _parse_uuid(auth_user.sub)
    if role is None or user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    set_actor_id(str(user_id))
    correlation_id = get_correlation_id() or getattr(request.state, "correlation_id", None)
    return Caller(
        user_id=user_id,
        role=role,
        branch_id=_parse_uuid(auth_user.branch),
        correlation_id=correlation_id,
    )
