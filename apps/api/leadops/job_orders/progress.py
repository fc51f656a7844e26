from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from leadops.job_orders.models import JobLead
from leadops.job_orders.schemas import JobLeadStatus, JobOrderProgress


def _percentage(total: int, closed: int) -> int:
    if total <= 0:
        return 0
    # Half-up, so 1 of 8 closed reads 13 rather than banker's 12.
    return (closed * 200 + total) // (2 * total)


def progress_from_counts(total: int, closed: int) -> JobOrderProgress:
    return JobOrderProgress(total=total, closed=closed, percentage=_percentage(total, closed))


def progress_from_statuses(statuses: Iterable[str]) -> JobOrderProgress:
    values = list(statuses)
    closed = sum(1 for value in values if value == JobLeadStatus.CLOSED.value)
    return progress_from_counts(len(values), closed)


def compute_progress(session: Session, job_order_id: uuid.UUID) -> JobOrderProgress:
    """Counts live job lead rows; nothing about progress is ever stored."""
    row = session.execute(
        select(
            func.count(JobLead.id),
            func.coalesce(func.sum(case((JobLead.status == JobLeadStatus.CLOSED.value, 1), else_=0)), 0),
        ).where(JobLead.job_id == job_order_id)
    ).one()
    return progress_from_counts(int(row[0] or 0), int(row[1] or 0))
