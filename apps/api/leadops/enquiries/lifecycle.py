from __future__ import annotations

from enum import StrEnum


class EnquiryStatus(StrEnum):
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    INTERESTED = "INTERESTED"
    NOT_INTERESTED = "NOT_INTERESTED"
    FOLLOW_UP = "FOLLOW_UP"
    ENROLLED = "ENROLLED"
    DROPPED = "DROPPED"
    INVALID = "INVALID"


class ActivityType(StrEnum):
    STATUS_CHANGE = "STATUS_CHANGE"
    FOLLOW_UP = "FOLLOW_UP"
    CALL_LOG = "CALL_LOG"
    ENROLLMENT_DIRECT = "ENROLLMENT_DIRECT"


class FollowUpStatus(StrEnum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    RESCHEDULED = "RESCHEDULED"


DIRECT_ENROLLMENT_DESCRIPTION = "Direct enrollment completed without admission form"


def build_activity_title(
    activity_type: ActivityType,
    previous_status: EnquiryStatus | None = None,
    new_status: EnquiryStatus | None = None,
) -> str:
    if activity_type is ActivityType.STATUS_CHANGE:
        if previous_status is not None and new_status is not None:
            return f"Status changed from {previous_status.value} to {new_status.value}"
        return "Status updated"
    if activity_type is ActivityType.FOLLOW_UP:
        return "Follow-up scheduled"
    if activity_type is ActivityType.CALL_LOG:
        return "Call logged"
    if activity_type is ActivityType.ENROLLMENT_DIRECT:
        return "Direct enrollment completed"
    return "Activity logged"
