"""Closed role model and the per-operation capability table.

Every guarded operation asks ``can(caller, Capability.X)`` instead of comparing
role strings at the call site.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from leadops.platform.security.context import Caller


class Role(StrEnum):
    ADMIN = "admin"
    MANAGER = "manager"
    EXECUTIVE = "executive"
    TELECALLER = "telecaller"


class Capability(StrEnum):
    ASSIGN_LEADS = "leads.assign"
    CREATE_JOB_ORDER = "job_orders.create"
    REASSIGN_JOB_ORDER = "job_orders.reassign"
    DELETE_JOB_ORDER = "job_orders.delete"
    VIEW_ALL_JOB_ORDERS = "job_orders.read_all"
    VIEW_BRANCH_JOB_ORDERS = "job_orders.read_branch"
    VIEW_ALL_ENQUIRIES = "enquiries.read_all"
    DELETE_ENQUIRY = "enquiries.delete"


class JobOrderScope(StrEnum):
    ALL = "all"
    BRANCH = "branch"
    OWN = "own"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset(
        {
            Capability.ASSIGN_LEADS,
            Capability.CREATE_JOB_ORDER,
            Capability.REASSIGN_JOB_ORDER,
            Capability.DELETE_JOB_ORDER,
            Capability.VIEW_ALL_JOB_ORDERS,
            Capability.VIEW_ALL_ENQUIRIES,
            Capability.DELETE_ENQUIRY,
        }
    ),
    Role.MANAGER: frozenset(
        {
            Capability.ASSIGN_LEADS,
            Capability.CREATE_JOB_ORDER,
            Capability.REASSIGN_JOB_ORDER,
            Capability.VIEW_BRANCH_JOB_ORDERS,
        }
    ),
    Role.EXECUTIVE: frozenset({Capability.REASSIGN_JOB_ORDER}),
    Role.TELECALLER: frozenset(),
}

# Roles that may only act on leads assigned to them.
SELF_ASSIGNED_ONLY_ROLES: frozenset[Role] = frozenset({Role.TELECALLER})

# Roles never offered as assignment targets.
NON_ASSIGNABLE_ROLES: frozenset[Role] = frozenset({Role.ADMIN, Role.MANAGER})


def parse_role(value: str | None) -> Role | None:
    if not value:
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


def can(caller: Caller, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(caller.role, frozenset())


def is_self_assigned_only(caller: Caller) -> bool:
    return caller.role in SELF_ASSIGNED_ONLY_ROLES


def job_order_scope(caller: Caller) -> JobOrderScope:
    if can(caller, Capability.VIEW_ALL_JOB_ORDERS):
        return JobOrderScope.ALL
    if can(caller, Capability.VIEW_BRANCH_JOB_ORDERS) and caller.branch_id is not None:
        return JobOrderScope.BRANCH
    return JobOrderScope.OWN
