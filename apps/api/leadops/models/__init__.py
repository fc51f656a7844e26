from leadops.directory.models import Branch, StaffUser
from leadops.enquiries.models import CallLog, Enquiry, EnquiryActivity, FollowUp
from leadops.job_orders.models import JobLead, JobOrder
from leadops.notifications.models import Notification

__all__ = [
    "Branch",
    "StaffUser",
    "CallLog",
    "Enquiry",
    "EnquiryActivity",
    "FollowUp",
    "JobLead",
    "JobOrder",
    "Notification",
]
