from __future__ import annotations

from sqlalchemy import Select

from leadops.core.rbac import Capability, can, is_self_assigned_only
from leadops.enquiries.models import Enquiry
from leadops.platform.security.context import Caller


def scope_enquiry_query(stmt: Select, caller: Caller) -> Select:
    if can(caller, Capability.VIEW_ALL_ENQUIRIES):
        return stmt
    if is_self_assigned_only(caller) or caller.branch_id is None:
        return stmt.where(Enquiry.assigned_worker_id == caller.user_id)
    return stmt.where(Enquiry.branch_id == caller.branch_id)


def can_view_enquiry(caller: Caller, enquiry: Enquiry) -> bool:
    if can(caller, Capability.VIEW_ALL_ENQUIRIES):
        return True
    if is_self_assigned_only(caller) or caller.branch_id is None:
        return enquiry.assigned_worker_id == caller.user_id
    return enquiry.branch_id == caller.branch_id


def can_act_on_enquiry(caller: Caller, enquiry: Enquiry) -> bool:
    if is_self_assigned_only(caller):
        return enquiry.assigned_worker_id == caller.user_id
    return True


def can_modify_enquiry(caller: Caller, enquiry: Enquiry) -> bool:
    # Writes never reach an enquiry the caller could not read.
    return can_view_enquiry(caller, enquiry) and can_act_on_enquiry(caller, enquiry)
