from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from leadops.core.rbac import NON_ASSIGNABLE_ROLES
from leadops.core.results import ActionResult, ok
from leadops.directory.models import Branch, StaffUser
from leadops.directory.schemas import BranchRead, StaffUserRead


@dataclass(slots=True)
class DirectoryService:
    """Read access to branches and staff; both are owned by another system."""

    def get_branch(self, session: Session, branch_id: uuid.UUID) -> Branch | None:
        return session.get(Branch, branch_id)

    def get_staff_user(self, session: Session, user_id: uuid.UUID) -> StaffUser | None:
        return session.get(StaffUser, user_id)

    def list_branches(self, session: Session) -> ActionResult[list[BranchRead]]:
        rows = session.scalars(select(Branch).where(Branch.is_active.is_(True)).order_by(Branch.name.asc())).all()
        return ok("Branches fetched successfully", data=[BranchRead.model_validate(row) for row in rows])

    def list_assignable_workers(
        self,
        session: Session,
        branch_id: uuid.UUID | None = None,
    ) -> ActionResult[list[StaffUserRead]]:
        stmt = (
            select(StaffUser)
            .where(StaffUser.is_active.is_(True))
            .where(StaffUser.role.not_in([role.value for role in NON_ASSIGNABLE_ROLES]))
        )
        if branch_id is not None:
            stmt = stmt.where(StaffUser.branch_id == branch_id)
        rows = session.scalars(stmt.order_by(StaffUser.name.asc())).all()
        return ok("Users fetched successfully", data=[StaffUserRead.model_validate(row) for row in rows])


directory_service = DirectoryService()
