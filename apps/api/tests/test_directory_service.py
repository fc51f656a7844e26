from __future__ import annotations

from collections.abc import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from leadops import models  # noqa: F401
from leadops.core.database import Base
from leadops.directory.models import Branch, StaffUser
from leadops.directory.service import DirectoryService


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


def test_assignable_workers_exclude_admins_managers_and_inactive(db_session: Session) -> None:
    east = Branch(name="East")
    west = Branch(name="West")
    db_session.add_all([east, west])
    db_session.flush()
    db_session.add_all(
        [
            StaffUser(name="Anu", email="anu@example.test", role="admin", branch_id=east.id),
            StaffUser(name="Bala", email="bala@example.test", role="manager", branch_id=east.id),
            StaffUser(name="Chitra", email="chitra@example.test", role="telecaller", branch_id=east.id),
            StaffUser(name="Dev", email="dev@example.test", role="executive", branch_id=east.id),
            StaffUser(name="Esha", email="esha@example.test", role="telecaller", branch_id=west.id),
            StaffUser(name="Faiz", email="faiz@example.test", role="telecaller", branch_id=east.id, is_active=False),
        ]
    )
    db_session.commit()
    service = DirectoryService()

    everyone = service.list_assignable_workers(db_session)
    east_only = service.list_assignable_workers(db_session, branch_id=east.id)

    assert [user.name for user in everyone.data] == ["Chitra", "Dev", "Esha"]
    assert [user.name for user in east_only.data] == ["Chitra", "Dev"]
    assert everyone.message == "Users fetched successfully"


def test_list_branches_hides_inactive(db_session: Session) -> None:
    db_session.add_all([Branch(name="Open"), Branch(name="Closed", is_active=False)])
    db_session.commit()

    result = DirectoryService().list_branches(db_session)

    assert [branch.name for branch in result.data] == ["Open"]
