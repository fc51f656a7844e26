from __future__ import annotations

import uuid
from collections.abc import Generator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from pydantic import ValidationError
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from leadops import models  # noqa: F401
from leadops.core.database import Base
from leadops.core.rbac import Role
from leadops.directory.models import Branch, StaffUser
from leadops.enquiries.lifecycle import FollowUpStatus
from leadops.enquiries.models import CallLog, Enquiry, EnquiryActivity, FollowUp
from leadops.enquiries.schemas import (
    CallLogCreate,
    CallLogFilters,
    FollowUpCreate,
    FollowUpFilters,
    FollowUpUpdate,
)
from leadops.enquiries.service import EnquiryService
from leadops.platform.security.context import Caller
from leadops.platform.security.errors import ErrorKind


PAST = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
FUTURE = datetime(2099, 3, 1, 9, 0, tzinfo=timezone.utc)


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


@pytest.fixture()
def service() -> EnquiryService:
    return EnquiryService()


@dataclass
class Desk:
    kochi: Branch
    thrissur: Branch
    admin: Caller
    manager: Caller
    remote_manager: Caller
    telecaller: Caller
    other_telecaller: Caller
    mine: Enquiry
    local: Enquiry
    remote: Enquiry


def _caller(session: Session, name: str, role: Role, branch: Branch) -> Caller:
    user = StaffUser(name=name, email=f"{uuid.uuid4().hex}@example.test", role=role.value, branch_id=branch.id)
    session.add(user)
    session.flush()
    return Caller(user_id=user.id, role=role, branch_id=branch.id)


def _enquiry(session: Session, name: str, branch: Branch, creator: Caller, worker: Caller | None = None) -> Enquiry:
    enquiry = Enquiry(
        candidate_name=name,
        phone="9847000000",
        branch_id=branch.id,
        enquiry_source="Walk-in",
        created_by_user_id=creator.user_id,
        assigned_worker_id=worker.user_id if worker else None,
    )
    session.add(enquiry)
    session.flush()
    return enquiry


@pytest.fixture()
def desk(db_session: Session) -> Desk:
    kochi = Branch(name="Kochi")
    thrissur = Branch(name="Thrissur")
    db_session.add_all([kochi, thrissur])
    db_session.flush()
    admin = _caller(db_session, "Asha Admin", Role.ADMIN, kochi)
    telecaller = _caller(db_session, "Tina Tele", Role.TELECALLER, kochi)
    result = Desk(
        kochi=kochi,
        thrissur=thrissur,
        admin=admin,
        manager=_caller(db_session, "Manu Manager", Role.MANAGER, kochi),
        remote_manager=_caller(db_session, "Rahul Manager", Role.MANAGER, thrissur),
        telecaller=telecaller,
        other_telecaller=_caller(db_session, "Omar Tele", Role.TELECALLER, kochi),
        mine=_enquiry(db_session, "Mine", kochi, admin, worker=telecaller),
        local=_enquiry(db_session, "Local", kochi, admin),
        remote=_enquiry(db_session, "Remote", thrissur, admin),
    )
    db_session.commit()
    return result


def _follow_up(session: Session, enquiry: Enquiry, creator: Caller, scheduled_at: datetime, status: str = "PENDING") -> FollowUp:
    row = FollowUp(enquiry_id=enquiry.id, scheduled_at=scheduled_at, status=status, created_by_user_id=creator.user_id)
    session.add(row)
    session.commit()
    return row


def _call_log(session: Session, enquiry: Enquiry, creator: Caller, called_at: datetime, outcome: str) -> CallLog:
    row = CallLog(enquiry_id=enquiry.id, call_date=called_at, outcome=outcome, created_by_user_id=creator.user_id)
    session.add(row)
    session.commit()
    return row


def test_new_follow_up_starts_pending(db_session: Session, desk: Desk, service: EnquiryService) -> None:
    result = service.create_follow_up(db_session, desk.admin, desk.local.id, FollowUpCreate(scheduled_at=FUTURE))

    assert result.data.status is FollowUpStatus.PENDING
    assert result.data.outcome is None


def test_list_follow_ups_is_scoped_and_ordered_by_schedule(
    db_session: Session,
    desk: Desk,
    service: EnquiryService,
) -> None:
    _follow_up(db_session, desk.local, desk.admin, FUTURE)
    _follow_up(db_session, desk.mine, desk.admin, PAST)
    _follow_up(db_session, desk.remote, desk.admin, PAST + timedelta(days=1))

    everything = service.list_follow_ups(db_session, desk.admin, FollowUpFilters())
    branch_view = service.list_follow_ups(db_session, desk.manager, FollowUpFilters())
    own_view = service.list_follow_ups(db_session, desk.telecaller, FollowUpFilters())

    assert [item.enquiry.candidate_name for item in everything.data] == ["Mine", "Remote", "Local"]
    assert everything.pagination.total == 3
    assert [item.enquiry.candidate_name for item in branch_view.data] == ["Mine", "Local"]
    assert [item.enquiry.candidate_name for item in own_view.data] == ["Mine"]


def test_list_follow_ups_filters(db_session: Session, desk: Desk, service: EnquiryService) -> None:
    overdue = _follow_up(db_session, desk.local, desk.admin, PAST)
    _follow_up(db_session, desk.local, desk.admin, PAST, status="COMPLETED")
    upcoming = _follow_up(db_session, desk.local, desk.admin, FUTURE)

    overdue_only = service.list_follow_ups(db_session, desk.admin, FollowUpFilters(overdue=True))
    completed = service.list_follow_ups(
        db_session,
        desk.admin,
        FollowUpFilters(statuses=[FollowUpStatus.COMPLETED, FollowUpStatus.CANCELLED]),
    )
    later = service.list_follow_ups(db_session, desk.admin, FollowUpFilters(scheduled_from=FUTURE - timedelta(days=1)))
    earlier = service.list_follow_ups(db_session, desk.admin, FollowUpFilters(scheduled_to=PAST + timedelta(hours=1)))

    assert [item.id for item in overdue_only.data] == [overdue.id]
    assert [item.status for item in completed.data] == [FollowUpStatus.COMPLETED]
    assert [item.id for item in later.data] == [upcoming.id]
    assert earlier.pagination.total == 2


def test_list_follow_ups_paginates(db_session: Session, desk: Desk, service: EnquiryService) -> None:
    for offset in range(5):
        _follow_up(db_session, desk.local, desk.admin, FUTURE + timedelta(days=offset))

    second_page = service.list_follow_ups(db_session, desk.admin, FollowUpFilters(page=2, limit=2))

    assert len(second_page.data) == 2
    assert second_page.pagination.model_dump() == {"page": 2, "limit": 2, "total": 5, "pages": 3}
    assert second_page.data[0].scheduled_at.date() == (FUTURE + timedelta(days=2)).date()


def test_rescheduling_defaults_status_to_rescheduled(db_session: Session, desk: Desk, service: EnquiryService) -> None:
    follow_up = _follow_up(db_session, desk.mine, desk.admin, PAST)
    new_time = FUTURE.replace(hour=15)

    result = service.update_follow_up(
        db_session,
        desk.telecaller,
        follow_up.id,
        FollowUpUpdate(rescheduled_at=new_time, notes="Asked to call after exams"),
    )

    assert result.success is True
    assert result.message == "Follow-up rescheduled successfully"
    assert result.data.status is FollowUpStatus.RESCHEDULED
    assert result.data.scheduled_at.replace(tzinfo=timezone.utc) == new_time
    assert result.data.notes == "Asked to call after exams"


def test_explicit_status_wins_over_reschedule_default(db_session: Session, desk: Desk, service: EnquiryService) -> None:
    follow_up = _follow_up(db_session, desk.local, desk.admin, PAST)

    rescheduled = service.update_follow_up(
        db_session,
        desk.manager,
        follow_up.id,
        FollowUpUpdate(rescheduled_at=FUTURE, status=FollowUpStatus.PENDING),
    )
    completed = service.update_follow_up(
        db_session,
        desk.manager,
        follow_up.id,
        FollowUpUpdate(status=FollowUpStatus.COMPLETED, outcome="Visited campus"),
    )

    assert rescheduled.data.status is FollowUpStatus.PENDING
    assert completed.message == "Follow-up updated successfully"
    assert completed.data.status is FollowUpStatus.COMPLETED
    assert completed.data.outcome == "Visited campus"
    assert completed.data.scheduled_at.replace(tzinfo=timezone.utc) == FUTURE


def test_follow_up_update_rejects_unknown_fields() -> None:
    with pytest.raises(ValidationError):
        FollowUpUpdate.model_validate({"enquiry_id": str(uuid.uuid4())})


def test_follow_up_changes_require_access_to_the_enquiry(
    db_session: Session,
    desk: Desk,
    service: EnquiryService,
) -> None:
    follow_up = _follow_up(db_session, desk.mine, desk.admin, PAST)

    by_other_telecaller = service.update_follow_up(
        db_session,
        desk.other_telecaller,
        follow_up.id,
        FollowUpUpdate(status=FollowUpStatus.CANCELLED),
    )
    by_remote_manager = service.delete_follow_up(db_session, desk.remote_manager, follow_up.id)
    missing = service.update_follow_up(db_session, desk.admin, uuid.uuid4(), FollowUpUpdate())

    assert by_other_telecaller.error_kind is ErrorKind.ACCESS_DENIED
    assert by_remote_manager.error_kind is ErrorKind.ACCESS_DENIED
    assert missing.error_kind is ErrorKind.NOT_FOUND
    assert missing.message == "Follow-up not found"
    db_session.expire_all()
    assert db_session.get(FollowUp, follow_up.id).status == "PENDING"


def test_delete_follow_up_keeps_the_timeline_entry(db_session: Session, desk: Desk, service: EnquiryService) -> None:
    created = service.create_follow_up(db_session, desk.telecaller, desk.mine.id, FollowUpCreate(scheduled_at=FUTURE))

    result = service.delete_follow_up(db_session, desk.telecaller, created.data.id)

    assert result.success is True
    assert result.message == "Follow-up deleted successfully"
    db_session.expire_all()
    assert db_session.get(FollowUp, created.data.id) is None
    activity = db_session.scalar(select(EnquiryActivity).where(EnquiryActivity.enquiry_id == desk.mine.id))
    assert activity.type == "FOLLOW_UP"
    assert activity.follow_up_id is None


def test_delete_follow_up_rolls_back_on_storage_failure(
    db_session: Session,
    desk: Desk,
    service: EnquiryService,
) -> None:
    follow_up = _follow_up(db_session, desk.local, desk.admin, FUTURE)

    def fail_on_delete(session: Session, flush_context: Any, instances: Any) -> None:
        if session.deleted:
            raise OperationalError("DELETE", {}, Exception("lock timeout"))

    event.listen(db_session, "before_flush", fail_on_delete)
    try:
        result = service.delete_follow_up(db_session, desk.admin, follow_up.id)
    finally:
        event.remove(db_session, "before_flush", fail_on_delete)

    assert result.error_kind is ErrorKind.INTERNAL
    assert result.message == "Failed to delete follow-up"
    db_session.expire_all()
    assert db_session.get(FollowUp, follow_up.id) is not None


def test_list_call_logs_is_scoped_newest_first_and_filtered(
    db_session: Session,
    desk: Desk,
    service: EnquiryService,
) -> None:
    _call_log(db_session, desk.mine, desk.admin, PAST, "No answer")
    _call_log(db_session, desk.local, desk.admin, PAST + timedelta(days=2), "Interested")
    _call_log(db_session, desk.remote, desk.admin, PAST + timedelta(days=1), "No answer")

    everything = service.list_call_logs(db_session, desk.admin, CallLogFilters())
    branch_view = service.list_call_logs(db_session, desk.manager, CallLogFilters())
    own_view = service.list_call_logs(db_session, desk.telecaller, CallLogFilters())
    unanswered = service.list_call_logs(db_session, desk.admin, CallLogFilters(outcome="No answer"))
    windowed = service.list_call_logs(
        db_session,
        desk.admin,
        CallLogFilters(called_from=PAST + timedelta(hours=1), called_to=PAST + timedelta(days=1, hours=1)),
    )

    assert everything.message == "Call logs fetched successfully"
    assert [item.enquiry.candidate_name for item in everything.data] == ["Local", "Remote", "Mine"]
    assert [item.enquiry.candidate_name for item in branch_view.data] == ["Local", "Mine"]
    assert [item.enquiry.candidate_name for item in own_view.data] == ["Mine"]
    assert unanswered.pagination.total == 2
    assert [item.enquiry.candidate_name for item in windowed.data] == ["Remote"]


def test_delete_call_log(db_session: Session, desk: Desk, service: EnquiryService) -> None:
    created = service.create_call_log(db_session, desk.telecaller, desk.mine.id, CallLogCreate(outcome="Busy"))

    denied = service.delete_call_log(db_session, desk.other_telecaller, created.data.id)
    deleted = service.delete_call_log(db_session, desk.telecaller, created.data.id)
    missing = service.delete_call_log(db_session, desk.admin, created.data.id)

    assert denied.error_kind is ErrorKind.ACCESS_DENIED
    assert deleted.success is True
    assert deleted.message == "Call log deleted successfully"
    assert missing.error_kind is ErrorKind.NOT_FOUND
    assert missing.message == "Call log not found"
    db_session.expire_all()
    assert db_session.scalar(select(func.count()).select_from(CallLog)) == 0
    activity = db_session.scalar(select(EnquiryActivity).where(EnquiryActivity.enquiry_id == desk.mine.id))
    assert activity.type == "CALL_LOG"
    assert activity.call_log_id is None
