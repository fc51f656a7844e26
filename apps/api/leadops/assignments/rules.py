from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session

from leadops.core.rbac import Capability, can
from leadops.core.results import ActionResult, access_denied, invalid_input, not_found
from leadops.core.time import as_date
from leadops.directory.models import Branch, StaffUser
from leadops.platform.security.context import Caller


JOB_NAME_REQUIRED = "Job name is required"
START_DATE_IN_PAST = "Start date cannot be in the past"
START_AFTER_END = "Start date cannot be after end date"
ALREADY_ASSIGNED = "Some selected enquiries are already assigned. Bulk assignment requires unassigned enquiries."


@dataclass(slots=True, frozen=True)
class AssignmentTarget:
    worker: StaffUser
    branch: Branch
    job_name: str
    start_date: date
    end_date: date


def check_job_window(
    job_name: str | None,
    start_date: date | datetime,
    end_date: date | datetime,
    today: date,
) -> ActionResult[Any] | None:
    if not (job_name or "").strip():
        return invalid_input(JOB_NAME_REQUIRED)
    if as_date(start_date) < today:
        return invalid_input(START_DATE_IN_PAST)
    if as_date(start_date) > as_date(end_date):
        return invalid_input(START_AFTER_END)
    return None


def validate_assignment(
    session: Session,
    caller: Caller,
    *,
    worker_id: Any,
    branch_id: Any,
    start_date: date | datetime,
    end_date: date | datetime,
    job_name: str | None,
    today: date,
) -> AssignmentTarget | ActionResult[Any]:
    """Run the assignment preconditions in order; the first violation wins."""
    if not can(caller, Capability.ASSIGN_LEADS):
        return access_denied()

    window_failure = check_job_window(job_name, start_date, end_date, today)
    if window_failure is not None:
        return window_failure

    branch = session.get(Branch, branch_id)
    if branch is None:
        return not_found("Branch not found")

    worker = session.get(StaffUser, worker_id)
    if worker is None:
        return not_found("Assigned user not found")
    if worker.branch_id is None:
        return invalid_input("Assigned user must have a branch")
    if worker.branch_id != branch.id:
        return invalid_input("Selected user does not belong to the chosen branch")

    return AssignmentTarget(
        worker=worker,
        branch=branch,
        job_name=(job_name or "").strip(),
        start_date=as_date(start_date),
        end_date=as_date(end_date),
    )
