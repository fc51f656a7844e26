from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from leadops.enquiries.lifecycle import ActivityType, EnquiryStatus, build_activity_title
from leadops.enquiries.models import EnquiryActivity


logger = logging.getLogger("leadops.enquiries")


@dataclass(slots=True)
class ActivityRecorder:
    """Adds audit rows to the caller's open transaction; never commits."""

    def record(
        self,
        session: Session,
        *,
        enquiry_id: uuid.UUID,
        activity_type: ActivityType,
        created_by_user_id: uuid.UUID,
        description: str | None = None,
        previous_status: EnquiryStatus | None = None,
        new_status: EnquiryStatus | None = None,
        status_remarks: str | None = None,
        follow_up_id: uuid.UUID | None = None,
        call_log_id: uuid.UUID | None = None,
    ) -> EnquiryActivity:
        activity = EnquiryActivity(
            enquiry_id=enquiry_id,
            type=activity_type.value,
            title=build_activity_title(activity_type, previous_status, new_status),
            description=description,
            previous_status=previous_status.value if previous_status is not None else None,
            new_status=new_status.value if new_status is not None else None,
            status_remarks=status_remarks,
            follow_up_id=follow_up_id,
            call_log_id=call_log_id,
            created_by_user_id=created_by_user_id,
        )
        session.add(activity)
        logger.debug(
            "enquiry.activity_recorded",
            extra={"enquiry_id": str(enquiry_id), "status": activity.new_status},
        )
        return activity


activity_recorder = ActivityRecorder()
