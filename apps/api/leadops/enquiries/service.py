from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import delete, exists, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from leadops import events
from leadops.core.rbac import Capability, can, is_self_assigned_only
from leadops.core.results import (
    ActionResult,
    Pagination,
    access_denied,
    internal_error,
    not_found,
    ok,
    resolve_paging,
)
from leadops.core.time import utcnow
from leadops.directory.models import Branch
from leadops.enquiries.access import can_modify_enquiry, can_view_enquiry, scope_enquiry_query
from leadops.enquiries.activity import ActivityRecorder, activity_recorder
from leadops.enquiries.lifecycle import DIRECT_ENROLLMENT_DESCRIPTION, ActivityType, EnquiryStatus, FollowUpStatus
from leadops.enquiries.models import CallLog, Enquiry, EnquiryActivity, FollowUp
from leadops.enquiries.schemas import (
    CallLogCreate,
    CallLogFilters,
    CallLogListItem,
    CallLogRead,
    EnquiryActivityRead,
    EnquiryCreate,
    EnquiryFilters,
    EnquiryRead,
    EnquirySummary,
    EnquiryUpdate,
    FollowUpCreate,
    FollowUpFilters,
    FollowUpListItem,
    FollowUpRead,
    FollowUpUpdate,
)
from leadops.job_orders.models import JobLead
from leadops.metrics import observe_enquiry_activity
from leadops.platform.security.context import Caller


logger = logging.getLogger("leadops.enquiries")

ENQUIRY_NOT_FOUND = "Enquiry not found"
FOLLOW_UP_NOT_FOUND = "Follow-up not found"


@dataclass(slots=True)
class EnquiryService:
    recorder: ActivityRecorder = field(default_factory=lambda: activity_recorder)

    def create_enquiry(self, session: Session, caller: Caller, payload: EnquiryCreate) -> ActionResult[EnquiryRead]:
        if session.get(Branch, payload.branch_id) is None:
            return not_found("Branch not found")

        data = payload.model_dump(mode="python")
        data["email"] = data.get("email") or None
        enquiry = Enquiry(
            **data,
            status=EnquiryStatus.NEW.value,
            created_by_user_id=caller.user_id,
            # Self-assigned-only creators would otherwise lose sight of their own lead.
            assigned_worker_id=caller.user_id if is_self_assigned_only(caller) else None,
            last_contact_date=utcnow(),
        )
        try:
            session.add(enquiry)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("enquiry.create_failed")
            return internal_error("Failed to create enquiry")

        session.refresh(enquiry)
        logger.info("enquiry.created", extra={"enquiry_id": str(enquiry.id)})
        events.publish("enquiry.created", {"enquiry_id": str(enquiry.id), "branch_id": str(enquiry.branch_id)})
        return ok("Enquiry created successfully", data=EnquiryRead.model_validate(enquiry))

    def get_enquiry(self, session: Session, caller: Caller, enquiry_id: uuid.UUID) -> ActionResult[EnquiryRead]:
        enquiry = session.get(Enquiry, enquiry_id)
        if enquiry is None:
            return not_found(ENQUIRY_NOT_FOUND)
        if not can_view_enquiry(caller, enquiry):
            return access_denied()
        return ok("Enquiry fetched successfully", data=EnquiryRead.model_validate(enquiry))

    def list_enquiries(
        self,
        session: Session,
        caller: Caller,
        filters: EnquiryFilters,
    ) -> ActionResult[list[EnquiryRead]]:
        page, limit = resolve_paging(filters.page, filters.limit)
        stmt = scope_enquiry_query(select(Enquiry), caller)

        if filters.search:
            term = f"%{filters.search.strip()}%"
            stmt = stmt.where(
                or_(
                    Enquiry.candidate_name.ilike(term),
                    Enquiry.phone.ilike(term),
                    Enquiry.email.ilike(term),
                )
            )
        if filters.statuses:
            stmt = stmt.where(Enquiry.status.in_([status.value for status in filters.statuses]))
        if filters.branch_id is not None:
            stmt = stmt.where(Enquiry.branch_id == filters.branch_id)
        if filters.enquiry_source:
            stmt = stmt.where(Enquiry.enquiry_source == filters.enquiry_source)
        if filters.assigned_worker_id is not None:
            stmt = stmt.where(Enquiry.assigned_worker_id == filters.assigned_worker_id)
        if filters.is_assigned is not None:
            has_job_lead = exists().where(JobLead.lead_id == Enquiry.id)
            stmt = stmt.where(has_job_lead if filters.is_assigned else ~has_job_lead)
        if filters.created_from is not None:
            stmt = stmt.where(Enquiry.created_at >= filters.created_from)
        if filters.created_to is not None:
            stmt = stmt.where(Enquiry.created_at <= filters.created_to)

        total = session.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        rows = session.scalars(
            stmt.order_by(Enquiry.created_at.desc(), Enquiry.id.asc()).offset((page - 1) * limit).limit(limit)
        ).all()
        return ok(
            "Enquiries fetched successfully",
            data=[EnquiryRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, limit, total),
        )

    def update_enquiry(
        self,
        session: Session,
        caller: Caller,
        enquiry_id: uuid.UUID,
        payload: EnquiryUpdate,
    ) -> ActionResult[EnquiryRead]:
        enquiry = session.get(Enquiry, enquiry_id)
        if enquiry is None:
            return not_found(ENQUIRY_NOT_FOUND)
        if not can_modify_enquiry(caller, enquiry):
            return access_denied()

        changes = payload.model_dump(exclude_unset=True)
        if "email" in changes:
            changes["email"] = changes["email"] or None
        for key, value in changes.items():
            setattr(enquiry, key, value)

        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("enquiry.update_failed", extra={"enquiry_id": str(enquiry_id)})
            return internal_error("Failed to update enquiry")

        session.refresh(enquiry)
        return ok("Enquiry updated successfully", data=EnquiryRead.model_validate(enquiry))

    def update_status_with_activity(
        self,
        session: Session,
        caller: Caller,
        enquiry_id: uuid.UUID,
        new_status: EnquiryStatus,
        remarks: str | None = None,
    ) -> ActionResult[EnquiryRead]:
        return self._transition(
            session,
            caller,
            enquiry_id,
            new_status=new_status,
            activity_type=ActivityType.STATUS_CHANGE,
            description=remarks,
            remarks=remarks,
            success_message="Enquiry status updated successfully",
        )

    def enroll_direct(
        self,
        session: Session,
        caller: Caller,
        enquiry_id: uuid.UUID,
        remarks: str | None = None,
    ) -> ActionResult[EnquiryRead]:
        return self._transition(
            session,
            caller,
            enquiry_id,
            new_status=EnquiryStatus.ENROLLED,
            activity_type=ActivityType.ENROLLMENT_DIRECT,
            description=remarks or DIRECT_ENROLLMENT_DESCRIPTION,
            remarks=remarks,
            success_message="Enquiry enrolled successfully",
        )

    def create_follow_up(
        self,
        session: Session,
        caller: Caller,
        enquiry_id: uuid.UUID,
        payload: FollowUpCreate,
    ) -> ActionResult[FollowUpRead]:
        enquiry, failure = self._load_for_action(session, caller, enquiry_id)
        if failure is not None:
            return failure

        try:
            follow_up = FollowUp(
                enquiry_id=enquiry.id,
                scheduled_at=payload.scheduled_at,
                notes=payload.notes,
                status=FollowUpStatus.PENDING.value,
                created_by_user_id=caller.user_id,
            )
            session.add(follow_up)
            session.flush()
            self.recorder.record(
                session,
                enquiry_id=enquiry.id,
                activity_type=ActivityType.FOLLOW_UP,
                created_by_user_id=caller.user_id,
                description=payload.notes or f"Follow-up scheduled for {payload.scheduled_at.date().isoformat()}",
                follow_up_id=follow_up.id,
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("enquiry.follow_up_failed", extra={"enquiry_id": str(enquiry_id)})
            return internal_error("Failed to create follow-up")

        session.refresh(follow_up)
        observe_enquiry_activity(ActivityType.FOLLOW_UP.value)
        return ok("Follow-up created successfully", data=FollowUpRead.model_validate(follow_up))

    def create_call_log(
        self,
        session: Session,
        caller: Caller,
        enquiry_id: uuid.UUID,
        payload: CallLogCreate,
    ) -> ActionResult[CallLogRead]:
        enquiry, failure = self._load_for_action(session, caller, enquiry_id)
        if failure is not None:
            return failure

        try:
            now = utcnow()
            call_log = CallLog(
                enquiry_id=enquiry.id,
                call_date=now,
                duration_seconds=payload.duration_seconds,
                outcome=payload.outcome,
                notes=payload.notes,
                created_by_user_id=caller.user_id,
            )
            session.add(call_log)
            enquiry.last_contact_date = now
            session.flush()
            self.recorder.record(
                session,
                enquiry_id=enquiry.id,
                activity_type=ActivityType.CALL_LOG,
                created_by_user_id=caller.user_id,
                description=payload.notes or f"Call outcome: {payload.outcome or 'N/A'}",
                call_log_id=call_log.id,
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("enquiry.call_log_failed", extra={"enquiry_id": str(enquiry_id)})
            return internal_error("Failed to create call log")

        session.refresh(call_log)
        observe_enquiry_activity(ActivityType.CALL_LOG.value)
        return ok("Call log created successfully", data=CallLogRead.model_validate(call_log))

    def list_follow_ups(
        self,
        session: Session,
        caller: Caller,
        filters: FollowUpFilters,
    ) -> ActionResult[list[FollowUpListItem]]:
        page, limit = resolve_paging(filters.page, filters.limit)
        stmt = scope_enquiry_query(select(FollowUp).join(Enquiry, Enquiry.id == FollowUp.enquiry_id), caller)

        if filters.statuses:
            stmt = stmt.where(FollowUp.status.in_([item.value for item in filters.statuses]))
        if filters.overdue:
            stmt = stmt.where(FollowUp.status == FollowUpStatus.PENDING.value, FollowUp.scheduled_at < utcnow())
        if filters.scheduled_from is not None:
            stmt = stmt.where(FollowUp.scheduled_at >= filters.scheduled_from)
        if filters.scheduled_to is not None:
            stmt = stmt.where(FollowUp.scheduled_at <= filters.scheduled_to)

        total = session.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        rows = session.scalars(
            stmt.order_by(FollowUp.scheduled_at.asc(), FollowUp.id.asc()).offset((page - 1) * limit).limit(limit)
        ).all()
        enquiries = self._summaries(session, {row.enquiry_id for row in rows})
        data = [
            FollowUpListItem(**FollowUpRead.model_validate(row).model_dump(), enquiry=enquiries.get(row.enquiry_id))
            for row in rows
        ]
        return ok("Follow-ups fetched successfully", data=data, pagination=Pagination.build(page, limit, total))

    def update_follow_up(
        self,
        session: Session,
        caller: Caller,
        follow_up_id: uuid.UUID,
        payload: FollowUpUpdate,
    ) -> ActionResult[FollowUpRead]:
        follow_up = session.get(FollowUp, follow_up_id)
        if follow_up is None:
            return not_found(FOLLOW_UP_NOT_FOUND)
        if not can_modify_enquiry(caller, session.get(Enquiry, follow_up.enquiry_id)):
            return access_denied()

        changes = payload.model_dump(exclude_unset=True)
        rescheduled_at = changes.pop("rescheduled_at", None)
        status = changes.pop("status", None)
        if rescheduled_at is not None:
            follow_up.scheduled_at = rescheduled_at
            status = status or FollowUpStatus.RESCHEDULED
        if status is not None:
            follow_up.status = FollowUpStatus(status).value
        for key, value in changes.items():
            setattr(follow_up, key, value)

        try:
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("follow_up.update_failed", extra={"follow_up_id": str(follow_up_id)})
            return internal_error("Failed to update follow-up")

        session.refresh(follow_up)
        logger.info(
            "follow_up.updated",
            extra={
                "follow_up_id": str(follow_up_id),
                "enquiry_id": str(follow_up.enquiry_id),
                "status": follow_up.status,
            },
        )
        message = "Follow-up rescheduled successfully" if rescheduled_at is not None else "Follow-up updated successfully"
        return ok(message, data=FollowUpRead.model_validate(follow_up))

    def delete_follow_up(self, session: Session, caller: Caller, follow_up_id: uuid.UUID) -> ActionResult[None]:
        follow_up = session.get(FollowUp, follow_up_id)
        if follow_up is None:
            return not_found(FOLLOW_UP_NOT_FOUND)
        if not can_modify_enquiry(caller, session.get(Enquiry, follow_up.enquiry_id)):
            return access_denied()

        enquiry_id = follow_up.enquiry_id
        try:
            # The timeline entry outlives the follow-up it described.
            session.execute(
                update(EnquiryActivity).where(EnquiryActivity.follow_up_id == follow_up_id).values(follow_up_id=None)
            )
            session.delete(follow_up)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("follow_up.delete_failed", extra={"follow_up_id": str(follow_up_id)})
            return internal_error("Failed to delete follow-up")

        logger.info("follow_up.deleted", extra={"follow_up_id": str(follow_up_id), "enquiry_id": str(enquiry_id)})
        return ok("Follow-up deleted successfully")

    def list_call_logs(
        self,
        session: Session,
        caller: Caller,
        filters: CallLogFilters,
    ) -> ActionResult[list[CallLogListItem]]:
        page, limit = resolve_paging(filters.page, filters.limit)
        stmt = scope_enquiry_query(select(CallLog).join(Enquiry, Enquiry.id == CallLog.enquiry_id), caller)

        if filters.outcome:
            stmt = stmt.where(CallLog.outcome == filters.outcome)
        if filters.called_from is not None:
            stmt = stmt.where(CallLog.call_date >= filters.called_from)
        if filters.called_to is not None:
            stmt = stmt.where(CallLog.call_date <= filters.called_to)

        total = session.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        rows = session.scalars(
            stmt.order_by(CallLog.call_date.desc(), CallLog.id.asc()).offset((page - 1) * limit).limit(limit)
        ).all()
        enquiries = self._summaries(session, {row.enquiry_id for row in rows})
        data = [
            CallLogListItem(**CallLogRead.model_validate(row).model_dump(), enquiry=enquiries.get(row.enquiry_id))
            for row in rows
        ]
        return ok("Call logs fetched successfully", data=data, pagination=Pagination.build(page, limit, total))

    def delete_call_log(self, session: Session, caller: Caller, call_log_id: uuid.UUID) -> ActionResult[None]:
        call_log = session.get(CallLog, call_log_id)
        if call_log is None:
            return not_found("Call log not found")
        if not can_modify_enquiry(caller, session.get(Enquiry, call_log.enquiry_id)):
            return access_denied()

        enquiry_id = call_log.enquiry_id
        try:
            session.execute(
                update(EnquiryActivity).where(EnquiryActivity.call_log_id == call_log_id).values(call_log_id=None)
            )
            session.delete(call_log)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("call_log.delete_failed", extra={"call_log_id": str(call_log_id)})
            return internal_error("Failed to delete call log")

        logger.info("call_log.deleted", extra={"call_log_id": str(call_log_id), "enquiry_id": str(enquiry_id)})
        return ok("Call log deleted successfully")

    def list_activities(
        self,
        session: Session,
        caller: Caller,
        enquiry_id: uuid.UUID,
        types: list[ActivityType] | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> ActionResult[list[EnquiryActivityRead]]:
        enquiry = session.get(Enquiry, enquiry_id)
        if enquiry is None:
            return not_found(ENQUIRY_NOT_FOUND)
        if not can_view_enquiry(caller, enquiry):
            return access_denied()

        page, limit = resolve_paging(page, limit)
        stmt = select(EnquiryActivity).where(EnquiryActivity.enquiry_id == enquiry_id)
        if types:
            stmt = stmt.where(EnquiryActivity.type.in_([item.value for item in types]))

        total = session.scalar(select(func.count()).select_from(stmt.subquery())) or 0
        rows = session.scalars(
            stmt.order_by(EnquiryActivity.created_at.desc(), EnquiryActivity.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        return ok(
            "Activities fetched successfully",
            data=[EnquiryActivityRead.model_validate(row) for row in rows],
            pagination=Pagination.build(page, limit, total),
        )

    def delete_enquiry(self, session: Session, caller: Caller, enquiry_id: uuid.UUID) -> ActionResult[None]:
        if not can(caller, Capability.DELETE_ENQUIRY):
            return access_denied("Access denied. Only admins can delete enquiries.")

        enquiry = session.get(Enquiry, enquiry_id)
        if enquiry is None:
            return not_found(ENQUIRY_NOT_FOUND)

        try:
            session.execute(delete(JobLead).where(JobLead.lead_id == enquiry_id))
            session.execute(delete(EnquiryActivity).where(EnquiryActivity.enquiry_id == enquiry_id))
            session.execute(delete(FollowUp).where(FollowUp.enquiry_id == enquiry_id))
            session.execute(delete(CallLog).where(CallLog.enquiry_id == enquiry_id))
            session.delete(enquiry)
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("enquiry.delete_failed", extra={"enquiry_id": str(enquiry_id)})
            return internal_error("Failed to delete enquiry")

        logger.info("enquiry.deleted", extra={"enquiry_id": str(enquiry_id)})
        events.publish("enquiry.deleted", {"enquiry_id": str(enquiry_id)})
        return ok("Enquiry deleted successfully")

    def _summaries(self, session: Session, enquiry_ids: set[uuid.UUID]) -> dict[uuid.UUID, EnquirySummary]:
        if not enquiry_ids:
            return {}
        rows = session.scalars(select(Enquiry).where(Enquiry.id.in_(enquiry_ids))).all()
        return {row.id: EnquirySummary.model_validate(row) for row in rows}

    def _load_for_action(
        self,
        session: Session,
        caller: Caller,
        enquiry_id: uuid.UUID,
        *,
        lock: bool = False,
    ) -> tuple[Enquiry | None, ActionResult[Any] | None]:
        stmt = select(Enquiry).where(Enquiry.id == enquiry_id)
        if lock:
            stmt = stmt.with_for_update()
        enquiry = session.scalar(stmt)
        if enquiry is None:
            return None, not_found(ENQUIRY_NOT_FOUND)
        if not can_modify_enquiry(caller, enquiry):
            return None, access_denied()
        return enquiry, None

    def _transition(
        self,
        session: Session,
        caller: Caller,
        enquiry_id: uuid.UUID,
        *,
        new_status: EnquiryStatus,
        activity_type: ActivityType,
        description: str | None,
        remarks: str | None,
        success_message: str,
    ) -> ActionResult[EnquiryRead]:
        try:
            enquiry, failure = self._load_for_action(session, caller, enquiry_id, lock=True)
            if failure is not None:
                session.rollback()
                return failure

            previous_status = EnquiryStatus(enquiry.status)
            enquiry.status = new_status.value
            enquiry.last_contact_date = utcnow()
            self.recorder.record(
                session,
                enquiry_id=enquiry.id,
                activity_type=activity_type,
                created_by_user_id=caller.user_id,
                description=description,
                previous_status=previous_status,
                new_status=new_status,
                status_remarks=remarks,
            )
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception("enquiry.status_update_failed", extra={"enquiry_id": str(enquiry_id)})
            return internal_error("Failed to update enquiry status")

        session.refresh(enquiry)
        observe_enquiry_activity(activity_type.value)
        logger.info(
            "enquiry.status_changed",
            extra={
                "enquiry_id": str(enquiry_id),
                "previous_status": previous_status.value,
                "status": new_status.value,
            },
        )
        events.publish(
            "enquiry.status_changed",
            {
                "enquiry_id": str(enquiry_id),
                "previous_status": previous_status.value,
                "new_status": new_status.value,
            },
        )
        return ok(success_message, data=EnquiryRead.model_validate(enquiry))


enquiry_service = EnquiryService()
