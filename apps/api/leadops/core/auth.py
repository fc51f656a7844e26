from dataclasses import dataclass

from fastapi import HTTPException, status
from jose import JWTError, jwt
from starlette.requests import Request

from leadops.core.config import get_settings


@dataclass
class AuthUser:
    sub: str
    role: str
    branch: str | None = None


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(request: Request) -> AuthUser:
    auth_header = request.headers.get("authorization", "")
    token = auth_header.replace("Bearer ", "") if auth_header.startswith("Bearer ") else ""

    if not token:
        raise _unauthorized()

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise _unauthorized()

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or not isinstance(role, str) or not role:
        raise _unauthorized()

    branch = payload.get("branch")
    return AuthUser(sub=str(subject), role=role, branch=str(branch) if branch else None)
