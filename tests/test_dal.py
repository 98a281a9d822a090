# tests/test_dal.py
import datetime as dt

import pytest
from sqlalchemy import select

import dal
import db
from dal import (
    SORT_MOST_LIKED,
    SORT_RECENT,
    add_book_from_hit,
    add_manual_book,
    delete_book,
    delete_session,
    get_or_create_user,
    list_shelf,
    load_snapshot,
    log_session,
    sessions_for_day,
    set_book_rating,
    set_book_status,
    toggle_finished,
    update_session,
    upsert_goal,
)
from db import StoreError, get_session, make_session_factory, save
from harvesters.openlibrary_client import MANUAL_PREFIX, SearchHit
from models import Book, BookStatus, Goal, ReadingSession, User

DAY = dt.date(2026, 10, 13)


def _hit(n=1, **kw):
    return SearchHit(
        external_id=kw.get("external_id", f"/works/OL{n}W"),
        title=kw.get("title", f"Book {n}"),
        authors=kw.get("authors", ("Octavia E. Butler",)),
        thumbnail_url=kw.get("thumbnail_url"),
    )


# ----------------------------
# Users
# ----------------------------
def test_get_or_create_user_is_idempotent(db_session):
    a = get_or_create_user(db_session, " ada ")
    b = get_or_create_user(db_session, "ada")
    assert a.id == b.id
    assert get_or_create_user(db_session, "").username == "demo"


# ----------------------------
# Books
# ----------------------------
def test_add_book_from_hit_dedupes_per_owner(db_session, owner_id, other_owner_id):
    book, created = add_book_from_hit(db_session, owner_id, _hit(1))
    again, created_again = add_book_from_hit(db_session, owner_id, _hit(1), status=BookStatus.WISHLIST)
    theirs, theirs_created = add_book_from_hit(db_session, other_owner_id, _hit(1))

    assert created and not created_again and theirs_created
    assert again.id == book.id
    assert again.status is BookStatus.READING
    assert theirs.id != book.id
    assert book.authors == "Octavia E. Butler"


def test_add_manual_book_defaults(db_session, owner_id):
    book = add_manual_book(db_session, owner_id, title="  ", author="", status=BookStatus.WISHLIST)
    other = add_manual_book(db_session, owner_id, title="Notes", author="Me")
    assert book.title == "Untitled"
    assert book.authors == "Unknown author"
    assert book.status is BookStatus.WISHLIST
    assert book.external_id.startswith(MANUAL_PREFIX)
    assert book.external_id != other.external_id


def test_rating_is_clamped(db_session, owner_id):
    book, _ = add_book_from_hit(db_session, owner_id, _hit())
    assert set_book_rating(db_session, owner_id, book.id, 9).rating == 5
    assert set_book_rating(db_session, owner_id, book.id, -3).rating == 0
    assert set_book_rating(db_session, owner_id, book.id, 4).rating == 4


def test_status_changes(db_session, owner_id, other_owner_id):
    book, _ = add_book_from_hit(db_session, owner_id, _hit())
    assert set_book_status(db_session, owner_id, book.id, "dnf").status is BookStatus.DNF
    assert toggle_finished(db_session, owner_id, book.id).status is BookStatus.FINISHED
    assert toggle_finished(db_session, owner_id, book.id).status is BookStatus.READING

    assert set_book_status(db_session, other_owner_id, book.id, "finished") is None
    assert toggle_finished(db_session, owner_id, 9999) is None
    with pytest.raises(ValueError):
        set_book_status(db_session, owner_id, book.id, "abandoned")


def test_unknown_stored_status_reads_as_reading(db_session, owner_id):
    book, _ = add_book_from_hit(db_session, owner_id, _hit())
    book.status_raw = "lost"
    assert book.status is BookStatus.READING


def test_list_shelf_sorting(db_session, owner_id):
    a, _ = add_book_from_hit(db_session, owner_id, _hit(1))
    b, _ = add_book_from_hit(db_session, owner_id, _hit(2))
    c, _ = add_book_from_hit(db_session, owner_id, _hit(3))
    add_book_from_hit(db_session, owner_id, _hit(4), status=BookStatus.WISHLIST)
    base = dt.datetime(2026, 10, 1)
    for i, book in enumerate((a, b, c)):
        book.created_at = base + dt.timedelta(days=i)
    set_book_rating(db_session, owner_id, a.id, 5)
    set_book_rating(db_session, owner_id, c.id, 2)

    recent = list_shelf(db_session, owner_id, BookStatus.READING, SORT_RECENT)
    liked = list_shelf(db_session, owner_id, "reading", SORT_MOST_LIKED)
    assert [x.id for x in recent] == [c.id, b.id, a.id]
    assert [x.id for x in liked] == [a.id, c.id, b.id]
    with pytest.raises(ValueError):
        list_shelf(db_session, owner_id, "reading", "alphabetical")


def test_delete_book_unlinks_sessions(db_session, owner_id):
    book, _ = add_book_from_hit(db_session, owner_id, _hit())
    rs = log_session(db_session, owner_id, DAY, pages=10, book_id=book.id)
    save(db_session)

    assert delete_book(db_session, owner_id, book.id) == 1
    save(db_session)
    db_session.expire_all()

    assert db_session.get(Book, book.id) is None
    kept = db_session.get(ReadingSession, rs.id)
    assert kept is not None
    assert kept.book_id is None
    assert kept.pages == 10


def test_delete_book_scoped_to_owner(db_session, owner_id, other_owner_id):
    book, _ = add_book_from_hit(db_session, owner_id, _hit())
    assert delete_book(db_session, other_owner_id, book.id) == 0


# ----------------------------
# Sessions
# ----------------------------
def test_log_session_clamps_and_orders(db_session, owner_id):
    first = log_session(db_session, owner_id, DAY, pages=-4, minutes=20)
    second = log_session(db_session, owner_id, DAY, pages=12)
    log_session(db_session, owner_id, DAY + dt.timedelta(days=1), pages=3)

    assert first.pages == 0 and first.minutes == 20
    assert [s.id for s in sessions_for_day(db_session, owner_id, DAY)] == [second.id, first.id]


def test_log_session_rejects_foreign_book(db_session, owner_id, other_owner_id):
    theirs, _ = add_book_from_hit(db_session, other_owner_id, _hit())
    with pytest.raises(ValueError):
        log_session(db_session, owner_id, DAY, pages=1, book_id=theirs.id)


def test_update_and_delete_session(db_session, owner_id, other_owner_id):
    book, _ = add_book_from_hit(db_session, owner_id, _hit())
    rs = log_session(db_session, owner_id, DAY, pages=5)

    updated = update_session(db_session, owner_id, rs.id, pages=15, minutes=-1, book_id=book.id)
    assert (updated.pages, updated.minutes, updated.book_id) == (15, 0, book.id)
    assert update_session(db_session, other_owner_id, rs.id, pages=1, minutes=1) is None

    assert delete_session(db_session, other_owner_id, rs.id) == 0
    assert delete_session(db_session, owner_id, rs.id) == 1
    assert sessions_for_day(db_session, owner_id, DAY) == []


# ----------------------------
# Snapshot / store errors
# ----------------------------
def test_snapshot_is_scoped_and_detached(db_session, owner_id, other_owner_id):
    add_book_from_hit(db_session, owner_id, _hit(1))
    add_book_from_hit(db_session, other_owner_id, _hit(2))
    log_session(db_session, owner_id, DAY, pages=7)
    log_session(db_session, other_owner_id, DAY, pages=70)

    snap = load_snapshot(db_session, owner_id)
    assert snap.owner_id == owner_id
    assert [b.external_id for b in snap.books] == ["/works/OL1W"]
    assert [s.pages for s in snap.sessions] == [7]
    assert snap.goals == ()


def test_failed_save_raises_store_error_and_rolls_back(db_session, owner_id):
    db_session.add(Goal(owner_id=owner_id, range="week", target_pages=1, start_date=DAY))
    db_session.add(Goal(owner_id=owner_id, range="week", target_pages=2, start_date=DAY))
    with pytest.raises(StoreError):
        save(db_session)
    assert db_session.scalars(select(Goal)).all() == []


def test_get_session_wraps_flush_errors(engine, monkeypatch):
    monkeypatch.setattr(db, "SessionLocal", make_session_factory(engine))
    with get_session() as s:
        get_or_create_user(s, "ada")

    with pytest.raises(StoreError):
        with get_session() as s:
            s.add(User(username="ada"))
            s.flush()  # unique username violated before commit

    with get_session() as s:
        assert s.scalars(select(User).where(User.username == "ada")).all() != []


def test_get_session_goal_race_stays_last_writer_wins(engine, monkeypatch):
    monkeypatch.setattr(db, "SessionLocal", make_session_factory(engine))
    with get_session() as s:
        owner = get_or_create_user(s, "ada").id
        upsert_goal(s, owner, "year", 100)

    real_get_goal = dal.get_goal
    calls = []

    def racing_get_goal(session, owner_id, range_):
        calls.append(owner_id)
        return None if len(calls) == 1 else real_get_goal(session, owner_id, range_)

    monkeypatch.setattr(dal, "get_goal", racing_get_goal)
    with get_session() as s:
        upsert_goal(s, owner, "year", 250)

    with get_session() as s:
        goals = s.scalars(select(Goal).where(Goal.owner_id == owner)).all()
    assert [g.target_pages for g in goals] == [250]
