from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import Select, exists, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from leadops import events
from leadops.core.rbac import Capability, JobOrderScope, can, is_self_assigned_only, job_order_scope
from leadops.core.results import (
    ActionResult,
    Pagination,
    access_denied,
    internal_error,
    invalid_input,
    not_found,
    ok,
    resolve_paging,
)
from leadops.core.time import today
from leadops.directory.models import StaffUser
from leadops.directory.schemas import StaffUserSummary
from leadops.enquiries.models import Enquiry
from leadops.job_orders.models import JobLead, JobOrder
from leadops.job_orders.progress import compute_progress, progress_from_statuses
from leadops.job_orders.schemas import (
    JobLeadDetail,
    JobLeadEnquiry,
    JobLeadRead,
    JobLeadStatus,
    JobOrderDetail,
    JobOrderFilters,
    JobOrderProgress,
    JobOrderRead,
    JobOrderSummary,
)
from leadops.metrics import observe_job_lead_status_update
from leadops.notifications.schemas import NotificationType
from leadops.notifications.service import Notifier, notification_service, notify_safely
from leadops.platform.security.context import Caller


logger = logging.getLogger("leadops.job_orders")

JOB_ORDER_NOT_FOUND = "Job order not found"


def job_order_link(job_order_id: uuid.UUID) -> str:
    return f"/enquiries/job-orders/{job_order_id}"


def scope_job_order_query(stmt: Select, caller: Caller) -> Select:
    scope = job_order_scope(caller)
    if scope is JobOrderScope.ALL:
        return stmt
    if scope is JobOrderScope.BRANCH:
        return stmt.where(JobOrder.branch_id == caller.branch_id)
    return stmt.where(JobOrder.manager_id == caller.user_id)


def can_view_job_order(caller: Caller, job_order: JobOrder) -> bool:
    scope = job_order_scope(caller)
    if scope is JobOrderScope.ALL:
        return True
    if scope is JobOrderScope.BRANCH:
        return job_order.branch_id == caller.branch_id
    return job_order.manager_id == caller.user_id


def _has_lead_with_status(status: JobLeadStatus):
    return exists().where(JobLead.job_id == JobOrder.id, JobLead.status == status.value)


@dataclass(slots=True)
class JobOrderService:
    notifier: Notifier = field(default_factory=lambda: notification_service)

    def list_job_orders(
        self,
        session: Session,
        caller: Caller,
        filters: JobOrderFilters,
    ) -> ActionResult[list[JobOrderSummary]]:
        page, limit = resolve_paging(filters.page, filters.limit)
        stmt = scope_job_order_query(select(JobOrder), caller)

        if filters.manager_id is not None:
            stmt = stmt.where(JobOrder.manager_id == filters.manager_id)
        if filters.branch_id is not None:
            stmt = stmt.where(JobOrder.branch_id == filters.branch_id)
        if filters.search:
            term = f"%{filters.search.strip()}%"
            matching_managers = select(StaffUser.id).where(StaffUser.name.ilike(term))
            stmt = stmt.where(
                or_(
                    JobOrder.name.ilike(term),
                    JobOrder.job_code.ilike(term),
                    JobOrder.manager_id.in_(matching_managers),
                )
            )
        if filters.pending_only:
            stmt = stmt.where(_has_lead_with_status(JobLeadStatus.PENDING))
        if filters.completed_only:
            # Vacuously true for an order whose leads were all moved elsewhere.
            stmt = stmt.where(~exists().where(JobLead.job_id == JobOrder.id, JobLead.status != JobLeadStatus.CLOSED.value))
        if filters.due_only:
            stmt = stmt.where(JobOrder.end_date < today(), _has_lead_with_status(JobLeadStatus.PENDING))

        total = session.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        orders = session.scalars(
            stmt.options(selectinload(JobOrder.job_leads))
            .order_by(JobOrder.created_at.desc(), JobOrder.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()

        managers = self._managers_by_id(session, {order.manager_id for order in orders})
        data = [
            JobOrderSummary(
                **JobOrderRead.model_validate(order).model_dump(),
                manager=managers.get(order.manager_id),
                progress=progress_from_statuses(lead.status for lead in order.job_leads),
            )
            for order in orders
        ]
        return ok("Job orders fetched successfully", data=data, pagination=Pagination.build(page, limit, total))

    def get_job_order(self, session: Session, caller: Caller, job_order_id: uuid.UUID) -> ActionResult[JobOrderDetail]:
        job_order = session.scalar(
            select(JobOrder).options(selectinload(JobOrder.job_leads)).where(JobOrder.id == job_order_id)
        )
        if job_order is None:
            return not_found(JOB_ORDER_NOT_FOUND)
        if not can_view_job_order(caller, job_order):
            return access_denied()

        lead_ids = [lead.lead_id for lead in job_order.job_leads]
        enquiries = (
            {row.id: row for row in session.scalars(select(Enquiry).where(Enquiry.id.in_(lead_ids))).all()}
            if lead_ids
            else {}
        )
        job_leads = [
            JobLeadDetail(
                **JobLeadRead.model_validate(lead).model_dump(),
                lead=JobLeadEnquiry.model_validate(enquiries[lead.lead_id]) if lead.lead_id in enquiries else None,
            )
            for lead in job_order.job_leads
        ]
        managers = self._managers_by_id(session, {job_order.manager_id})
        detail = JobOrderDetail(
            **JobOrderRead.model_validate(job_order).model_dump(),
            manager=managers.get(job_order.manager_id),
            progress=progress_from_statuses(lead.status for lead in job_order.job_leads),
            job_leads=job_leads,
        )
        return ok("Job order fetched successfully", data=detail)

    def get_job_order_progress(
        self,
        session: Session,
        caller: Caller,
        job_order_id: uuid.UUID,
    ) -> ActionResult[JobOrderProgress]:
        job_order = session.get(JobOrder, job_order_id)
        if job_order is None:
            return not_found(JOB_ORDER_NOT_FOUND)
        if not can_view_job_order(caller, job_order):
            return access_denied()
        return ok("Job order progress calculated successfully", data=compute_progress(session, job_order_id))

    def set_job_lead_status(
        self,
        session: Session,
        caller: Caller,
        job_lead_id: uuid.UUID,
        status: JobLeadStatus,
    ) -> ActionResult[JobLeadRead]:
        job_lead = session.scalar(
            select(JobLead).options(selectinload(JobLead.job_order)).where(JobLead.id == job_lead_id)
        )
        if job_lead is None:
            return not_found("Job lead not found")
        if not can_view_job_order(caller, job_lead.job_order):
            return access_denied()
        if is_self_assigned_only(caller) and job_lead.job_order.manager_id != caller.user_id:
            return access_denied()

        previous_status = job_lead.status
        job_lead.status = status.value
        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("job_lead.status_update_failed", extra={"job_lead_id": str(job_lead_id)})
            return internal_error("Failed to update job lead status")

        session.refresh(job_lead)
        observe_job_lead_status_update(status.value)
        logger.info(
            "job_lead.status_updated",
            extra={
                "job_lead_id": str(job_lead_id),
                "job_order_id": str(job_lead.job_id),
                "previous_status": previous_status,
                "status": status.value,
            },
        )
        events.publish(
            "job_lead.status_updated",
            {"job_lead_id": str(job_lead_id), "job_order_id": str(job_lead.job_id), "status": status.value},
        )
        return ok("Job lead status updated successfully", data=JobLeadRead.model_validate(job_lead))

    def reassign_job_order(
        self,
        session: Session,
        caller: Caller,
        job_order_id: uuid.UUID,
        new_manager_id: uuid.UUID,
    ) -> ActionResult[None]:
        if not can(caller, Capability.REASSIGN_JOB_ORDER):
            return access_denied()

        job_order = session.get(JobOrder, job_order_id)
        if job_order is None:
            return not_found(JOB_ORDER_NOT_FOUND)
        if not can_view_job_order(caller, job_order):
            return access_denied()

        new_manager = session.get(StaffUser, new_manager_id)
        if new_manager is None:
            return not_found("New manager user not found")
        if new_manager.branch_id != job_order.branch_id:
            return invalid_input("New manager does not belong to the job order's branch")

        previous_manager_id = job_order.manager_id
        job_order.manager_id = new_manager_id
        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("job_order.reassign_failed", extra={"job_order_id": str(job_order_id)})
            return internal_error("Failed to re-assign job order")

        name = job_order.name
        logger.info(
            "job_order.reassigned",
            extra={"job_order_id": str(job_order_id), "worker_id": str(new_manager_id)},
        )
        events.publish(
            "job_order.reassigned",
            {
                "job_order_id": str(job_order_id),
                "previous_manager_id": str(previous_manager_id),
                "manager_id": str(new_manager_id),
            },
        )
        if new_manager_id != caller.user_id:
            notify_safely(
                self.notifier,
                session,
                new_manager_id,
                "Job Order Re-assigned",
                f"You have been assigned as manager for job order: {name}",
                NotificationType.JOB_ORDER_ASSIGNED,
                job_order_link(job_order_id),
            )
        return ok("Job order re-assigned successfully")

    def delete_job_order(self, session: Session, caller: Caller, job_order_id: uuid.UUID) -> ActionResult[None]:
        if not can(caller, Capability.DELETE_JOB_ORDER):
            return access_denied("Access denied. Only admins can delete job orders.")

        job_order = session.scalar(
            select(JobOrder).options(selectinload(JobOrder.job_leads)).where(JobOrder.id == job_order_id)
        )
        if job_order is None:
            return not_found(JOB_ORDER_NOT_FOUND)

        lead_count = len(job_order.job_leads)
        try:
            # ORM cascade removes the job leads even where the store does not enforce ON DELETE CASCADE.
            session.delete(job_order)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("job_order.delete_failed", extra={"job_order_id": str(job_order_id)})
            return internal_error("Failed to delete job order")

        logger.info("job_order.deleted", extra={"job_order_id": str(job_order_id), "count": lead_count})
        events.publish("job_order.deleted", {"job_order_id": str(job_order_id), "job_lead_count": lead_count})
        return ok("Job order deleted successfully")

    def _managers_by_id(self, session: Session, manager_ids: set[uuid.UUID]) -> dict[uuid.UUID, StaffUserSummary]:
        if not manager_ids:
            return {}
        rows = session.scalars(select(StaffUser).where(StaffUser.id.in_(manager_ids))).all()
        return {row.id: StaffUserSummary.model_validate(row) for row in rows}


job_order_service = JobOrderService()
