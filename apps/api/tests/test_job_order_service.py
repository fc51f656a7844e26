from __future__ import annotations

import uuid
from collections.abc import Generator
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from leadops import models  # noqa: F401
from leadops.core.database import Base
from leadops.core.rbac import Role
from leadops.core.time import today
from leadops.directory.models import Branch, StaffUser
from leadops.enquiries.models import Enquiry
from leadops.job_orders.models import JobLead, JobOrder
from leadops.job_orders.schemas import JobLeadStatus, JobOrderFilters
from leadops.job_orders.service import JobOrderService
from leadops.notifications.schemas import NotificationType
from leadops.platform.security.context import Caller
from leadops.platform.security.errors import ErrorKind


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[uuid.UUID, str, str, NotificationType, str | None]] = []

    def notify(
        self,
        session: Session,
        user_id: uuid.UUID,
        title: str,
        message: str,
        notification_type: NotificationType,
        link: str | None = None,
    ) -> None:
        self.calls.append((user_id, title, message, notification_type, link))


class ExplodingNotifier:
    def notify(self, *args: Any, **kwargs: Any) -> None:
        raise RuntimeError("notification sink offline")


@dataclass
class Staff:
    branch_b: Branch
    branch_c: Branch
    admin: Caller
    manager_b: Caller
    manager_c: Caller
    executive_b: Caller
    telecaller_b: Caller
    telecaller_b2: Caller
    worker_c: Caller


def _caller(session: Session, name: str, role: Role, branch: Branch) -> Caller:
    user = StaffUser(name=name, email=f"{uuid.uuid4().hex}@example.test", role=role.value, branch_id=branch.id)
    session.add(user)
    session.flush()
    return Caller(user_id=user.id, role=role, branch_id=branch.id)


@pytest.fixture()
def staff(db_session: Session) -> Staff:
    branch_b = Branch(name="North")
    branch_c = Branch(name="South")
    db_session.add_all([branch_b, branch_c])
    db_session.flush()
    result = Staff(
        branch_b=branch_b,
        branch_c=branch_c,
        admin=_caller(db_session, "Ada Admin", Role.ADMIN, branch_b),
        manager_b=_caller(db_session, "Mona Manager", Role.MANAGER, branch_b),
        manager_c=_caller(db_session, "Carl Manager", Role.MANAGER, branch_c),
        executive_b=_caller(db_session, "Eve Exec", Role.EXECUTIVE, branch_b),
        telecaller_b=_caller(db_session, "Tara Tele", Role.TELECALLER, branch_b),
        telecaller_b2=_caller(db_session, "Tom Tele", Role.TELECALLER, branch_b),
        worker_c=_caller(db_session, "Sam South", Role.TELECALLER, branch_c),
    )
    db_session.commit()
    return result


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def service(notifier: RecordingNotifier) -> JobOrderService:
    return JobOrderService(notifier=notifier)


def _job_order(
    session: Session,
    staff: Staff,
    *,
    manager: Caller,
    statuses: list[str],
    name: str = "Outreach",
    job_code: str | None = None,
    start: date | None = None,
    end: date | None = None,
) -> JobOrder:
    start = start or today()
    job_order = JobOrder(
        name=name,
        job_code=job_code,
        manager_id=manager.user_id,
        assigner_id=staff.admin.user_id,
        branch_id=manager.branch_id,
        start_date=start,
        end_date=end or start + timedelta(days=7),
    )
    session.add(job_order)
    session.flush()
    for index, status in enumerate(statuses):
        enquiry = Enquiry(
            candidate_name=f"{name} lead {index}",
            phone="9000000000",
            branch_id=manager.branch_id,
            enquiry_source="Referral",
            created_by_user_id=staff.admin.user_id,
            assigned_worker_id=manager.user_id,
        )
        session.add(enquiry)
        session.flush()
        session.add(
            JobLead(
                job_id=job_order.id,
                lead_id=enquiry.id,
                status=status,
                assigner_id=staff.admin.user_id,
                assignee_id=manager.user_id,
            )
        )
    session.commit()
    return job_order


def _names(result: Any) -> list[str]:
    return sorted(item.name for item in result.data)


def test_progress_tracks_live_job_lead_rows(db_session: Session, staff: Staff, service: JobOrderService) -> None:
    job_order = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING"])

    before = service.get_job_order_progress(db_session, staff.admin, job_order.id)
    assert before.data.model_dump() == {"total": 1, "closed": 0, "percentage": 0}

    lead_id = db_session.scalar(select(JobLead.id).where(JobLead.job_id == job_order.id))
    updated = service.set_job_lead_status(db_session, staff.telecaller_b, lead_id, JobLeadStatus.CLOSED)
    assert updated.success is True
    assert updated.data.status is JobLeadStatus.CLOSED

    after = service.get_job_order_progress(db_session, staff.admin, job_order.id)
    assert after.data.model_dump() == {"total": 1, "closed": 1, "percentage": 100}


def test_progress_of_empty_job_order_is_zero(db_session: Session, staff: Staff, service: JobOrderService) -> None:
    job_order = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=[])

    result = service.get_job_order_progress(db_session, staff.admin, job_order.id)

    assert result.data.model_dump() == {"total": 0, "closed": 0, "percentage": 0}


def test_setting_the_same_status_twice_is_idempotent(
    db_session: Session,
    staff: Staff,
    service: JobOrderService,
) -> None:
    job_order = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING", "PENDING", "PENDING"])
    lead_id = db_session.scalars(select(JobLead.id).where(JobLead.job_id == job_order.id)).first()

    service.set_job_lead_status(db_session, staff.admin, lead_id, JobLeadStatus.CLOSED)
    first = service.get_job_order_progress(db_session, staff.admin, job_order.id).data
    service.set_job_lead_status(db_session, staff.admin, lead_id, JobLeadStatus.CLOSED)
    second = service.get_job_order_progress(db_session, staff.admin, job_order.id).data

    assert first == second
    assert second.percentage == 33


def test_telecaller_may_only_close_leads_in_their_own_job_orders(
    db_session: Session,
    staff: Staff,
    service: JobOrderService,
) -> None:
    job_order = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING"])
    lead_id = db_session.scalar(select(JobLead.id).where(JobLead.job_id == job_order.id))

    result = service.set_job_lead_status(db_session, staff.telecaller_b2, lead_id, JobLeadStatus.CLOSED)

    assert result.error_kind is ErrorKind.ACCESS_DENIED
    db_session.expire_all()
    assert db_session.get(JobLead, lead_id).status == "PENDING"


def test_job_lead_on_a_hidden_job_order_cannot_be_updated(
    db_session: Session,
    staff: Staff,
    service: JobOrderService,
) -> None:
    job_order = _job_order(db_session, staff, manager=staff.worker_c, statuses=["PENDING"])
    lead_id = db_session.scalar(select(JobLead.id).where(JobLead.job_id == job_order.id))

    hidden = service.get_job_order(db_session, staff.executive_b, job_order.id)
    by_executive = service.set_job_lead_status(db_session, staff.executive_b, lead_id, JobLeadStatus.CLOSED)
    by_other_manager = service.set_job_lead_status(db_session, staff.manager_b, lead_id, JobLeadStatus.CLOSED)
    by_branch_manager = service.set_job_lead_status(db_session, staff.manager_c, lead_id, JobLeadStatus.CLOSED)

    assert hidden.error_kind is ErrorKind.ACCESS_DENIED
    assert by_executive.error_kind is ErrorKind.ACCESS_DENIED
    assert by_other_manager.error_kind is ErrorKind.ACCESS_DENIED
    assert by_branch_manager.success is True
    db_session.expire_all()
    assert db_session.get(JobLead, lead_id).status == "CLOSED"


def test_set_status_on_unknown_job_lead(db_session: Session, staff: Staff, service: JobOrderService) -> None:
    result = service.set_job_lead_status(db_session, staff.admin, uuid.uuid4(), JobLeadStatus.CLOSED)

    assert result.error_kind is ErrorKind.NOT_FOUND
    assert result.message == "Job lead not found"


def test_get_job_order_distinguishes_hidden_from_missing(
    db_session: Session,
    staff: Staff,
    service: JobOrderService,
) -> None:
    job_order = _job_order(db_session, staff, manager=staff.worker_c, statuses=["PENDING"])

    hidden = service.get_job_order(db_session, staff.telecaller_b, job_order.id)
    missing = service.get_job_order(db_session, staff.telecaller_b, uuid.uuid4())

    assert hidden.error_kind is ErrorKind.ACCESS_DENIED
    assert hidden.message == "Access denied"
    assert missing.error_kind is ErrorKind.NOT_FOUND
    assert missing.message == "Job order not found"


def test_get_job_order_includes_leads_manager_and_progress(
    db_session: Session,
    staff: Staff,
    service: JobOrderService,
) -> None:
    job_order = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["CLOSED", "PENDING"])

    result = service.get_job_order(db_session, staff.manager_b, job_order.id)

    assert result.success is True
    detail = result.data
    assert detail.manager.name == "Tara Tele"
    assert detail.progress.model_dump() == {"total": 2, "closed": 1, "percentage": 50}
    assert len(detail.job_leads) == 2
    assert all(lead.lead is not None and lead.lead.candidate_name.startswith("Outreach lead") for lead in detail.job_leads)


def test_list_job_orders_is_scoped_by_role(db_session: Session, staff: Staff, service: JobOrderService) -> None:
    _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING"], name="Tara order")
    _job_order(db_session, staff, manager=staff.telecaller_b2, statuses=["PENDING"], name="Tom order")
    _job_order(db_session, staff, manager=staff.worker_c, statuses=["PENDING"], name="South order")

    assert _names(service.list_job_orders(db_session, staff.admin, JobOrderFilters())) == [
        "South order",
        "Tara order",
        "Tom order",
    ]
    assert _names(service.list_job_orders(db_session, staff.manager_b, JobOrderFilters())) == ["Tara order", "Tom order"]
    assert _names(service.list_job_orders(db_session, staff.telecaller_b, JobOrderFilters())) == ["Tara order"]


def test_list_job_orders_status_filters(db_session: Session, staff: Staff, service: JobOrderService) -> None:
    _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING", "CLOSED"], name="Mixed")
    _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["CLOSED", "CLOSED"], name="Done")
    _job_order(db_session, staff, manager=staff.telecaller_b, statuses=[], name="Emptied")
    _job_order(
        db_session,
        staff,
        manager=staff.telecaller_b,
        statuses=["PENDING"],
        name="Overdue",
        start=today() - timedelta(days=10),
        end=today() - timedelta(days=1),
    )
    _job_order(
        db_session,
        staff,
        manager=staff.telecaller_b,
        statuses=["CLOSED"],
        name="Late but done",
        start=today() - timedelta(days=10),
        end=today() - timedelta(days=1),
    )

    pending = service.list_job_orders(db_session, staff.admin, JobOrderFilters(pending_only=True))
    completed = service.list_job_orders(db_session, staff.admin, JobOrderFilters(completed_only=True))
    due = service.list_job_orders(db_session, staff.admin, JobOrderFilters(due_only=True))

    assert _names(pending) == ["Mixed", "Overdue"]
    assert _names(completed) == ["Done", "Emptied", "Late but done"]
    assert _names(due) == ["Overdue"]


def test_list_job_orders_search_matches_code_and_manager_name(
    db_session: Session,
    staff: Staff,
    service: JobOrderService,
) -> None:
    _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING"], name="Alpha", job_code="JO-771")
    _job_order(db_session, staff, manager=staff.telecaller_b2, statuses=["PENDING"], name="Beta")

    by_code = service.list_job_orders(db_session, staff.admin, JobOrderFilters(search="jo-771"))
    by_manager = service.list_job_orders(db_session, staff.admin, JobOrderFilters(search="Tom"))

    assert _names(by_code) == ["Alpha"]
    assert _names(by_manager) == ["Beta"]
    assert by_manager.data[0].manager.name == "Tom Tele"
    assert by_manager.data[0].progress.total == 1


def test_list_job_orders_paginates(db_session: Session, staff: Staff, service: JobOrderService) -> None:
    for index in range(3):
        _job_order(db_session, staff, manager=staff.telecaller_b, statuses=[], name=f"Order {index}")

    result = service.list_job_orders(db_session, staff.admin, JobOrderFilters(page=2, limit=2))

    assert result.pagination.model_dump() == {"page": 2, "limit": 2, "total": 3, "pages": 2}
    assert len(result.data) == 1


def test_reassign_moves_manager_and_notifies(
    db_session: Session,
    staff: Staff,
    service: JobOrderService,
    notifier: RecordingNotifier,
) -> None:
    job_order = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING"], name="Handover")

    result = service.reassign_job_order(db_session, staff.manager_b, job_order.id, staff.telecaller_b2.user_id)

    assert result.success is True
    db_session.expire_all()
    assert db_session.get(JobOrder, job_order.id).manager_id == staff.telecaller_b2.user_id
    assert notifier.calls == [
        (
            staff.telecaller_b2.user_id,
            "Job Order Re-assigned",
            "You have been assigned as manager for job order: Handover",
            NotificationType.JOB_ORDER_ASSIGNED,
            f"/enquiries/job-orders/{job_order.id}",
        )
    ]


def test_reassign_survives_a_failing_notifier(db_session: Session, staff: Staff) -> None:
    job_order = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING"])
    service = JobOrderService(notifier=ExplodingNotifier())

    result = service.reassign_job_order(db_session, staff.manager_b, job_order.id, staff.telecaller_b2.user_id)

    assert result.success is True
    db_session.expire_all()
    assert db_session.get(JobOrder, job_order.id).manager_id == staff.telecaller_b2.user_id


def test_executive_reassigns_only_their_own_job_orders(
    db_session: Session,
    staff: Staff,
    service: JobOrderService,
) -> None:
    own = _job_order(db_session, staff, manager=staff.executive_b, statuses=["PENDING"], name="Eve's")
    foreign = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING"], name="Tara's")

    handed_over = service.reassign_job_order(db_session, staff.executive_b, own.id, staff.telecaller_b2.user_id)
    blocked = service.reassign_job_order(db_session, staff.executive_b, foreign.id, staff.telecaller_b2.user_id)

    assert handed_over.success is True
    assert blocked.error_kind is ErrorKind.ACCESS_DENIED


def test_reassign_rejects_manager_from_another_branch(
    db_session: Session,
    staff: Staff,
    service: JobOrderService,
    notifier: RecordingNotifier,
) -> None:
    job_order = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING"])

    result = service.reassign_job_order(db_session, staff.admin, job_order.id, staff.worker_c.user_id)

    assert result.error_kind is ErrorKind.INVALID_INPUT
    assert result.message == "New manager does not belong to the job order's branch"
    assert notifier.calls == []


def test_reassign_requires_role_and_visibility(db_session: Session, staff: Staff, service: JobOrderService) -> None:
    job_order = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING"])

    by_telecaller = service.reassign_job_order(db_session, staff.telecaller_b, job_order.id, staff.telecaller_b2.user_id)
    by_other_branch = service.reassign_job_order(db_session, staff.manager_c, job_order.id, staff.telecaller_b2.user_id)
    unknown_manager = service.reassign_job_order(db_session, staff.admin, job_order.id, uuid.uuid4())

    assert by_telecaller.error_kind is ErrorKind.ACCESS_DENIED
    assert by_other_branch.error_kind is ErrorKind.ACCESS_DENIED
    assert unknown_manager.error_kind is ErrorKind.NOT_FOUND
    assert unknown_manager.message == "New manager user not found"


def test_delete_job_order_cascades_to_job_leads(db_session: Session, staff: Staff, service: JobOrderService) -> None:
    job_order = _job_order(db_session, staff, manager=staff.telecaller_b, statuses=["PENDING", "CLOSED"])
    other = _job_order(db_session, staff, manager=staff.telecaller_b2, statuses=["PENDING"], name="Keep")

    denied = service.delete_job_order(db_session, staff.manager_b, job_order.id)
    assert denied.error_kind is ErrorKind.ACCESS_DENIED
    assert denied.message == "Access denied. Only admins can delete job orders."

    deleted = service.delete_job_order(db_session, staff.admin, job_order.id)
    assert deleted.success is True

    db_session.expire_all()
    assert db_session.get(JobOrder, job_order.id) is None
    assert db_session.scalar(select(func.count()).select_from(JobLead).where(JobLead.job_id == job_order.id)) == 0
    assert db_session.scalar(select(func.count()).select_from(JobLead).where(JobLead.job_id == other.id)) == 1
    assert db_session.scalar(select(func.count()).select_from(Enquiry)) == 3


def test_delete_unknown_job_order(db_session: Session, staff: Staff, service: JobOrderService) -> None:
    result = service.delete_job_order(db_session, staff.admin, uuid.uuid4())

    assert result.error_kind is ErrorKind.NOT_FOUND
