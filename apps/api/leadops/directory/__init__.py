from leadops.directory.models import Branch, StaffUser
from leadops.directory.schemas import BranchRead, StaffUserRead, StaffUserSummary

__all__ = ["Branch", "StaffUser", "BranchRead", "StaffUserRead", "StaffUserSummary"]
