from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from leadops import events
from leadops.assignments.rules import (
    ALREADY_ASSIGNED,
    AssignmentTarget,
    check_job_window,
    validate_assignment,
)
from leadops.assignments.schemas import (
    AssignBulkRequest,
    AssignmentResult,
    AssignOneRequest,
    BulkAssignmentResult,
)
from leadops.core.rbac import Capability, can
from leadops.core.results import ActionResult, access_denied, internal_error, invalid_input, not_found, ok
from leadops.core.time import as_date, today
from leadops.directory.models import Branch, StaffUser
from leadops.enquiries.models import Enquiry
from leadops.enquiries.schemas import EnquiryRead
from leadops.job_orders.models import JobLead, JobOrder
from leadops.job_orders.schemas import JobLeadStatus, JobOrderCreate, JobOrderRead
from leadops.job_orders.service import job_order_link
from leadops.metrics import observe_lead_assignment
from leadops.notifications.schemas import NotificationType
from leadops.notifications.service import Notifier, notification_service, notify_safely
from leadops.otel import get_tracer
from leadops.platform.security.context import Caller


logger = logging.getLogger("leadops.assignments")
tracer = get_tracer("leadops.assignments")


class _BatchConflict(Exception):
    """A bulk precondition stopped holding between validation and the write."""


def _dedupe(ids: Sequence[uuid.UUID]) -> list[uuid.UUID]:
    return list(dict.fromkeys(ids))


@dataclass(slots=True)
class AssignmentEngine:
    notifier: Notifier = field(default_factory=lambda: notification_service)
    clock: Callable[[], date] = today

    def assign_one(
        self,
        session: Session,
        caller: Caller,
        enquiry_id: uuid.UUID,
        payload: AssignOneRequest,
    ) -> ActionResult[AssignmentResult]:
        started = time.perf_counter()
        with tracer.start_as_current_span("assignment.assign_one") as span:
            span.set_attribute("enquiry_id", str(enquiry_id))
            if caller.correlation_id:
                span.set_attribute("correlation_id", caller.correlation_id)
            target = validate_assignment(
                session,
                caller,
                worker_id=payload.worker_id,
                branch_id=payload.branch_id,
                start_date=payload.start_date,
                end_date=payload.end_date,
                job_name=payload.job_name,
                today=self.clock(),
            )
            if isinstance(target, ActionResult):
                return self._rejected("single", target, enquiry_id=enquiry_id)

            if session.get(Enquiry, enquiry_id) is None:
                return self._rejected("single", not_found("Enquiry not found"), enquiry_id=enquiry_id)

            try:
                enquiry = session.scalar(select(Enquiry).where(Enquiry.id == enquiry_id).with_for_update())
                if enquiry is None:
                    session.rollback()
                    return self._rejected("single", not_found("Enquiry not found"), enquiry_id=enquiry_id)

                # Re-assignment moves the lead out of whatever job order held it before.
                session.execute(delete(JobLead).where(JobLead.lead_id == enquiry.id))
                enquiry.assigned_worker_id = target.worker.id
                job_order = self._new_job_order(caller, target, payload.description, payload.remarks)
                session.add(job_order)
                session.flush()
                session.add(self._new_job_lead(caller, job_order, enquiry.id, target.worker.id))
                session.commit()
            except SQLAlchemyError:
                session.rollback()
                observe_lead_assignment("single", "error")
                logger.exception("assignment.failed", extra={"enquiry_id": str(enquiry_id), "mode": "single"})
                return internal_error("Failed to assign enquiry")

            session.refresh(enquiry)
            session.refresh(job_order)
            result = AssignmentResult(
                enquiry=EnquiryRead.model_validate(enquiry),
                job_order=JobOrderRead.model_validate(job_order),
            )
            span.set_attribute("job_order_id", str(job_order.id))

        observe_lead_assignment("single", "success", time.perf_counter() - started)
        logger.info(
            "assignment.completed",
            extra={
                "mode": "single",
                "enquiry_id": str(enquiry_id),
                "job_order_id": str(result.job_order.id),
                "worker_id": str(target.worker.id),
            },
        )
        events.publish(
            "enquiry.assigned",
            {
                "enquiry_id": str(enquiry_id),
                "job_order_id": str(result.job_order.id),
                "worker_id": str(target.worker.id),
            },
        )
        if target.worker.id != caller.user_id:
            notify_safely(
                self.notifier,
                session,
                target.worker.id,
                "New Enquiry Assigned",
                "You have been assigned a new enquiry.",
                NotificationType.ENQUIRY_ASSIGNED,
                f"/enquiries/{enquiry_id}",
            )
        return ok("Enquiry assigned successfully", data=result)

    def assign_bulk(
        self,
        session: Session,
        caller: Caller,
        payload: AssignBulkRequest,
    ) -> ActionResult[BulkAssignmentResult]:
        started = time.perf_counter()
        enquiry_ids = _dedupe(payload.enquiry_ids)
        with tracer.start_as_current_span("assignment.assign_bulk") as span:
            span.set_attribute("count", len(enquiry_ids))
            if caller.correlation_id:
                span.set_attribute("correlation_id", caller.correlation_id)
            target = validate_assignment(
                session,
                caller,
                worker_id=payload.worker_id,
                branch_id=payload.branch_id,
                start_date=payload.start_date,
                end_date=payload.end_date,
                job_name=payload.job_name,
                today=self.clock(),
            )
            if isinstance(target, ActionResult):
                return self._rejected("bulk", target, count=len(enquiry_ids))

            if not enquiry_ids:
                return self._rejected("bulk", invalid_input("No enquiries selected"))

            failure = self._check_unassigned(session, enquiry_ids)
            if failure is not None:
                return self._rejected("bulk", failure, count=len(enquiry_ids))

            try:
                job_order = self._write_batch(
                    session,
                    caller,
                    enquiry_ids,
                    assignee_id=target.worker.id,
                    job_order=self._new_job_order(caller, target, payload.description, payload.remarks),
                    require_unassigned=True,
                )
            except (_BatchConflict, IntegrityError):
                session.rollback()
                return self._rejected("bulk", invalid_input(ALREADY_ASSIGNED), count=len(enquiry_ids))
            except SQLAlchemyError:
                session.rollback()
                observe_lead_assignment("bulk", "error")
                logger.exception("assignment.failed", extra={"mode": "bulk", "count": len(enquiry_ids)})
                return internal_error("Failed to assign enquiries")

            result = BulkAssignmentResult(count=len(enquiry_ids), job_order_id=job_order.id)
            span.set_attribute("job_order_id", str(job_order.id))

        observe_lead_assignment("bulk", "success", time.perf_counter() - started)
        logger.info(
            "assignment.completed",
            extra={
                "mode": "bulk",
                "count": result.count,
                "job_order_id": str(result.job_order_id),
                "worker_id": str(target.worker.id),
            },
        )
        events.publish(
            "enquiries.bulk_assigned",
            {
                "enquiry_ids": [str(item) for item in enquiry_ids],
                "job_order_id": str(result.job_order_id),
                "worker_id": str(target.worker.id),
            },
        )
        if target.worker.id != caller.user_id:
            notify_safely(
                self.notifier,
                session,
                target.worker.id,
                "Bulk Enquiries Assigned",
                f"You have been assigned {result.count} new enquiries.",
                NotificationType.ENQUIRY_ASSIGNED,
                "/enquiries",
            )
        return ok(f"{result.count} enquiries assigned successfully", data=result)

    def create_job_order(
        self,
        session: Session,
        caller: Caller,
        payload: JobOrderCreate,
    ) -> ActionResult[JobOrderRead]:
        started = time.perf_counter()
        enquiry_ids = _dedupe(payload.enquiry_ids)
        with tracer.start_as_current_span("assignment.create_job_order") as span:
            span.set_attribute("count", len(enquiry_ids))
            if not can(caller, Capability.CREATE_JOB_ORDER):
                return self._rejected("job_order", access_denied())

            window_failure = check_job_window(payload.name, payload.start_date, payload.end_date, self.clock())
            if window_failure is not None:
                return self._rejected("job_order", window_failure)

            manager = session.get(StaffUser, payload.manager_id)
            if manager is None:
                return self._rejected("job_order", not_found("Manager not found"))

            branch_id = payload.branch_id or manager.branch_id
            if branch_id is None:
                return self._rejected("job_order", invalid_input("Branch is required"))
            branch = session.get(Branch, branch_id)
            if branch is None:
                return self._rejected("job_order", not_found("Branch not found"))
            if manager.branch_id != branch.id:
                return self._rejected("job_order", invalid_input("Manager does not belong to the chosen branch"))

            found = session.scalar(select(func.count(Enquiry.id)).where(Enquiry.id.in_(enquiry_ids))) or 0
            if found != len(enquiry_ids):
                return self._rejected("job_order", not_found("Some enquiries not found"))

            target = AssignmentTarget(
                worker=manager,
                branch=branch,
                job_name=payload.name.strip(),
                start_date=as_date(payload.start_date),
                end_date=as_date(payload.end_date),
            )
            try:
                job_order = self._write_batch(
                    session,
                    caller,
                    enquiry_ids,
                    assignee_id=manager.id,
                    job_order=self._new_job_order(caller, target, payload.description, payload.remarks),
                    require_unassigned=False,
                )
            except (_BatchConflict, IntegrityError):
                session.rollback()
                return self._rejected(
                    "job_order",
                    invalid_input("Some enquiries are already attached to a job order"),
                    count=len(enquiry_ids),
                )
            except SQLAlchemyError:
                session.rollback()
                observe_lead_assignment("job_order", "error")
                logger.exception("job_order.create_failed", extra={"count": len(enquiry_ids)})
                return internal_error("Failed to create job order")

            session.refresh(job_order)
            result = JobOrderRead.model_validate(job_order)
            span.set_attribute("job_order_id", str(result.id))

        observe_lead_assignment("job_order", "success", time.perf_counter() - started)
        logger.info(
            "job_order.created",
            extra={"job_order_id": str(result.id), "worker_id": str(manager.id), "count": len(enquiry_ids)},
        )
        events.publish(
            "job_order.created",
            {"job_order_id": str(result.id), "manager_id": str(manager.id), "job_lead_count": len(enquiry_ids)},
        )
        if manager.id != caller.user_id:
            notify_safely(
                self.notifier,
                session,
                manager.id,
                "New Job Order Assigned",
                f"You have been assigned as manager for job order: {result.name}",
                NotificationType.JOB_ORDER_ASSIGNED,
                job_order_link(result.id),
            )
        return ok("Job order created successfully", data=result)

    def _check_unassigned(self, session: Session, enquiry_ids: list[uuid.UUID]) -> ActionResult[Any] | None:
        enquiries = session.scalars(select(Enquiry).where(Enquiry.id.in_(enquiry_ids))).all()
        if len(enquiries) != len(enquiry_ids):
            return not_found("Some enquiries not found")

        attached = session.scalar(select(func.count(JobLead.id)).where(JobLead.lead_id.in_(enquiry_ids))) or 0
        if attached or any(enquiry.assigned_worker_id is not None for enquiry in enquiries):
            return invalid_input(ALREADY_ASSIGNED)
        return None

    def _write_batch(
        self,
        session: Session,
        caller: Caller,
        enquiry_ids: list[uuid.UUID],
        *,
        assignee_id: uuid.UUID,
        job_order: JobOrder,
        require_unassigned: bool,
    ) -> JobOrder:
        """Lock, re-check and write one job order with a lead per enquiry, all in one transaction."""
        locked = session.scalars(select(Enquiry).where(Enquiry.id.in_(enquiry_ids)).with_for_update()).all()
        if len(locked) != len(enquiry_ids):
            raise _BatchConflict()
        if session.scalar(select(func.count(JobLead.id)).where(JobLead.lead_id.in_(enquiry_ids))):
            raise _BatchConflict()

        stmt = update(Enquiry).where(Enquiry.id.in_(enquiry_ids))
        if require_unassigned:
            stmt = stmt.where(Enquiry.assigned_worker_id.is_(None))
        updated = session.execute(stmt.values(assigned_worker_id=assignee_id))
        if updated.rowcount != len(enquiry_ids):
            raise _BatchConflict()

        session.add(job_order)
        session.flush()
        for enquiry_id in enquiry_ids:
            session.add(self._new_job_lead(caller, job_order, enquiry_id, assignee_id))
        session.commit()
        return job_order

    def _new_job_order(
        self,
        caller: Caller,
        target: AssignmentTarget,
        description: str | None,
        remarks: str | None,
    ) -> JobOrder:
        return JobOrder(
            job_code=None,
            name=target.job_name,
            description=description,
            remarks=remarks,
            manager_id=target.worker.id,
            assigner_id=caller.user_id,
            branch_id=target.branch.id,
            start_date=target.start_date,
            end_date=target.end_date,
        )

    def _new_job_lead(
        self,
        caller: Caller,
        job_order: JobOrder,
        enquiry_id: uuid.UUID,
        assignee_id: uuid.UUID,
    ) -> JobLead:
        return JobLead(
            job_id=job_order.id,
            lead_id=enquiry_id,
            status=JobLeadStatus.PENDING.value,
            assigner_id=caller.user_id,
            assignee_id=assignee_id,
        )

    def _rejected(self, mode: str, result: ActionResult[Any], **fields: Any) -> ActionResult[Any]:
        observe_lead_assignment(mode, "rejected")
        extra: dict[str, Any] = {"mode": mode, "error_kind": result.error_kind}
        for key, value in fields.items():
            extra[key] = str(value) if isinstance(value, uuid.UUID) else value
        logger.info("assignment.rejected", extra=extra)
        return result


assignment_engine = AssignmentEngine()
