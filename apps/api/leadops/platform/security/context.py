from __future__ import annotations

import uuid
from dataclasses import dataclass

from leadops.core.rbac import Role


@dataclass(slots=True, frozen=True)
class Caller:
    """Resolved identity of whoever is invoking an operation."""

    user_id: uuid.UUID
    role: Role
    branch_id: uuid.UUID | None = None
    correlation_id: str | None = None
