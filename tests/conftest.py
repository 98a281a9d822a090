# tests/conftest.py
import datetime as dt
import itertools

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from dal import get_or_create_user
from db import make_engine, make_session_factory
from models import Base, BookStatus, GoalRange
from snapshot import BookRecord, GoalRecord, SessionRecord

# Wednesday; with Sunday-first weeks the current week starts 2026-10-11
NOW = dt.datetime(2026, 10, 14, 15, 30)


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database per test"""
    eng = make_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    """Create a new database session for a test"""
    session: Session = make_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def owner_id(db_session):
    return get_or_create_user(db_session, "reader").id


@pytest.fixture
def other_owner_id(db_session):
    return get_or_create_user(db_session, "someone-else").id


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_session_record():
    """Factory for detached SessionRecords with unique ids"""
    ids = itertools.count(1)

    def _make(owner_id=1, date=NOW.date(), pages=0, minutes=0, book_id=None):
        return SessionRecord(
            id=next(ids), owner_id=owner_id, date=date, pages=pages, minutes=minutes, book_id=book_id
        )

    return _make


@pytest.fixture
def make_book_record():
    """Factory for detached BookRecords; each call is created one hour after the previous"""
    ids = itertools.count(1)

    def _make(owner_id=1, status=BookStatus.READING, title=None, authors="Ursula K. Le Guin",
              external_id=None, created_at=None):
        i = next(ids)
        return BookRecord(
            id=i,
            owner_id=owner_id,
            external_id=external_id or f"/works/OL{i}W",
            title=title or f"Book {i}",
            authors=authors,
            cover_url=None,
            status=status,
            rating=0,
            created_at=created_at or (NOW - dt.timedelta(days=30) + dt.timedelta(hours=i)),
        )

    return _make


@pytest.fixture
def make_goal_record():
    ids = itertools.count(1)

    def _make(owner_id=1, range_=GoalRange.WEEK, target_pages=100, start_date=dt.date(2026, 10, 11)):
        return GoalRecord(
            id=next(ids), owner_id=owner_id, range=GoalRange(range_),
            target_pages=target_pages, start_date=start_date,
        )

    return _make
