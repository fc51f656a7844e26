from leadops.enquiries.lifecycle import ActivityType, EnquiryStatus, FollowUpStatus
from leadops.enquiries.models import CallLog, Enquiry, EnquiryActivity, FollowUp
from leadops.enquiries.schemas import EnquiryActivityRead, EnquiryCreate, EnquiryRead, EnquiryUpdate

__all__ = [
    "ActivityType",
    "EnquiryStatus",
    "FollowUpStatus",
    "CallLog",
    "Enquiry",
    "EnquiryActivity",
    "FollowUp",
    "EnquiryActivityRead",
    "EnquiryCreate",
    "EnquiryRead",
    "EnquiryUpdate",
]
