from leadops.job_orders.models import JobLead, JobOrder
from leadops.job_orders.schemas import (
    JobLeadRead,
    JobLeadStatus,
    JobOrderCreate,
    JobOrderDetail,
    JobOrderFilters,
    JobOrderProgress,
    JobOrderRead,
    JobOrderSummary,
)

__all__ = [
    "JobLead",
    "JobOrder",
    "JobLeadRead",
    "JobLeadStatus",
    "JobOrderCreate",
    "JobOrderDetail",
    "JobOrderFilters",
    "JobOrderProgress",
    "JobOrderRead",
    "JobOrderSummary",
]
