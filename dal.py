# dal.py
from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import List, Optional, Union

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

import config
from harvesters.openlibrary_client import MANUAL_PREFIX, SearchHit
from models import Board, BoardBook, Book, BookStatus, Goal, GoalRange, ReadingSession, User
from reading_stats.time_ranges import range_start
from snapshot import BoardRecord, BookRecord, GoalRecord, LibrarySnapshot, SessionRecord

logger = logging.getLogger(__name__)

SORT_RECENT = "recent"
SORT_MOST_LIKED = "most_liked"

# ---------------------------------------------------------------------------
# Utilities / lookups
# ---------------------------------------------------------------------------

def _clamp_rating(rating: int) -> int:
    return min(max(int(rating or 0), 0), 5)


def _non_negative(v: Optional[int]) -> int:
    return max(int(v or 0), 0)


def get_or_create_user(session: Session, username: str) -> User:
    """
    Return the User with this username, creating it if needed.
    Blank names fall back to 'demo'.
    """
    username = (username or "").strip() or "demo"
    user = session.scalar(select(User).where(User.username == username))
    if user:
        return user
    user = User(username=username)
    session.add(user)
    session.flush()  # ensures user.id is available
    return user


def get_user(session: Session, owner_id: int) -> User | None:
    return session.get(User, owner_id)


def set_display_name(session: Session, owner_id: int, display_name: str) -> User | None:
    """Profile name; blank falls back to 'Reader'."""
    user = session.get(User, owner_id)
    if not user:
        return None
    user.display_name = (display_name or "").strip()[:80] or "Reader"
    session.flush()
    return user


def find_book_by_external_id(session: Session, owner_id: int, external_id: Optional[str]) -> Book | None:
    """
    Lookup one owner's Book by its catalog id.
    """
    if not external_id:
        return None
    return session.scalar(
        select(Book).where(Book.owner_id == owner_id, Book.external_id == external_id)
    )


def _owned_book(session: Session, owner_id: int, book_id: int) -> Book | None:
    book = session.get(Book, book_id)
    if not book or book.owner_id != owner_id:
        return None
    return book


# ---------------------------------------------------------------------------
# Snapshot (read side for all stats)
# ---------------------------------------------------------------------------

def load_snapshot(session: Session, owner_id: int) -> LibrarySnapshot:
    """
    Everything one owner has, detached from the session as frozen records.
    Books newest first, sessions newest first, goals by start date desc.
    """
    books = session.execute(
        select(Book).where(Book.owner_id == owner_id).order_by(Book.created_at.desc(), Book.id.desc())
    ).scalars().all()
    sessions = session.execute(
        select(ReadingSession)
        .where(ReadingSession.owner_id == owner_id)
        .order_by(ReadingSession.date.desc(), ReadingSession.id.desc())
    ).scalars().all()
    goals = session.execute(
        select(Goal).where(Goal.owner_id == owner_id).order_by(Goal.start_date.desc())
    ).scalars().all()
    boards = session.execute(
        select(Board)
        .where(Board.owner_id == owner_id)
        .options(selectinload(Board.entries))
        .order_by(Board.created_at.desc(), Board.id.desc())
    ).scalars().all()

    return LibrarySnapshot(
        owner_id=owner_id,
        books=tuple(BookRecord.from_model(b) for b in books),
        sessions=tuple(SessionRecord.from_model(s) for s in sessions),
        goals=tuple(GoalRecord.from_model(g) for g in goals),
        boards=tuple(BoardRecord.from_model(b) for b in boards),
    )


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------

def add_book_from_hit(
    session: Session,
    owner_id: int,
    hit: SearchHit,
    status: BookStatus = BookStatus.READING,
) -> tuple[Book, bool]:
    """
    Put a catalog hit on the owner's shelf.
    Returns (book, created_bool); an existing copy is returned untouched.
    Does not commit.
    """
    existing = find_book_by_external_id(session, owner_id, hit.external_id)
    if existing:
        return existing, False

    book = Book(
        owner_id=owner_id,
        external_id=hit.external_id,
        title=hit.title,
        authors=hit.authors_display,
        cover_url=hit.thumbnail_url,
        status_raw=BookStatus(status).value,
        rating=0,
    )
    session.add(book)
    session.flush()  # book.id becomes available
    logger.info("Owner %s added %r", owner_id, book.title)
    return book, True


def add_manual_book(
    session: Session,
    owner_id: int,
    *,
    title: str,
    author: str = "",
    status: BookStatus = BookStatus.READING,
) -> Book:
    """
    Add a book typed in by hand. It gets a MANUAL-<uuid> external id so it
    never collides with catalog ids.
    """
    book = Book(
        owner_id=owner_id,
        external_id=f"{MANUAL_PREFIX}{uuid.uuid4()}",
        title=(title or "").strip() or "Untitled",
        authors=(author or "").strip() or "Unknown author",
        cover_url=None,
        status_raw=BookStatus(status).value,
        rating=0,
    )
    session.add(book)
    session.flush()
    return book


def set_book_status(session: Session, owner_id: int, book_id: int, status: Union[BookStatus, str]) -> Book | None:
    """
    Move a book to another shelf. Returns the Book or None if not found.
    Raises ValueError for an unknown status.
    """
    status = BookStatus(status)
    book = _owned_book(session, owner_id, book_id)
    if not book:
        return None
    book.status = status
    session.flush()
    return book


def toggle_finished(session: Session, owner_id: int, book_id: int) -> Book | None:
    """finished <-> reading"""
    book = _owned_book(session, owner_id, book_id)
    if not book:
        return None
    book.status = BookStatus.READING if book.status is BookStatus.FINISHED else BookStatus.FINISHED
    session.flush()
    return book


def set_book_rating(session: Session, owner_id: int, book_id: int, rating: int) -> Book | None:
    """
    Star rating, clamped to 0..5 (0 = unrated).
    """
    book = _owned_book(session, owner_id, book_id)
    if not book:
        return None
    book.rating = _clamp_rating(rating)
    session.flush()
    return book


def list_shelf(
    session: Session,
    owner_id: int,
    status: Union[BookStatus, str],
    sort: str = SORT_RECENT,
) -> List[Book]:
    """
    Books on one shelf.
    - recent: newest first
    - most_liked: highest rating first, ties newest first
    """
    stmt = select(Book).where(Book.owner_id == owner_id, Book.status_raw == BookStatus(status).value)
    if sort == SORT_MOST_LIKED:
        stmt = stmt.order_by(Book.rating.desc(), Book.created_at.desc(), Book.id.desc())
    elif sort == SORT_RECENT:
        stmt = stmt.order_by(Book.created_at.desc(), Book.id.desc())
    else:
        raise ValueError(f"unknown sort mode: {sort!r}")
    return session.execute(stmt).scalars().all()


def delete_book(session: Session, owner_id: int, book_id: int) -> int:
    """
    Hard-delete a book. Its reading sessions stay and become unlinked;
    it is taken off every board.
    Returns number of Book rows deleted (0 or 1).
    """
    owned = select(Book.id).where(Book.id == book_id, Book.owner_id == owner_id)
    session.execute(delete(BoardBook).where(BoardBook.book_id.in_(owned)))
    session.execute(
        update(ReadingSession)
        .where(ReadingSession.owner_id == owner_id, ReadingSession.book_id == book_id)
        .values(book_id=None)
    )
    res = session.execute(delete(Book).where(Book.id == book_id, Book.owner_id == owner_id))
    return int(res.rowcount or 0)


# ---------------------------------------------------------------------------
# Reading sessions (edited one day at a time)
# ---------------------------------------------------------------------------

def sessions_for_day(session: Session, owner_id: int, day: dt.date) -> List[ReadingSession]:
    """
    Sessions logged on a calendar day, most recently logged first.
    """
    stmt = (
        select(ReadingSession)
        .where(ReadingSession.owner_id == owner_id, ReadingSession.date == day)
        .order_by(ReadingSession.id.desc())
    )
    return session.execute(stmt).scalars().all()


def log_session(
    session: Session,
    owner_id: int,
    day: dt.date,
    *,
    pages: int = 0,
    minutes: int = 0,
    book_id: Optional[int] = None,
) -> ReadingSession:
    """
    Add another session on `day`. Negative pages/minutes are stored as 0.
    """
    if book_id is not None and not _owned_book(session, owner_id, book_id):
        raise ValueError(f"book {book_id} is not on this user's shelf")

    rs = ReadingSession(
        owner_id=owner_id,
        book_id=book_id,
        date=day,
        pages=_non_negative(pages),
        minutes=_non_negative(minutes),
    )
    session.add(rs)
    session.flush()
    return rs


def update_session(
    session: Session,
    owner_id: int,
    session_id: int,
    *,
    pages: int,
    minutes: int,
    book_id: Optional[int] = None,
    day: Optional[dt.date] = None,
) -> ReadingSession | None:
    """
    Overwrite a session's numbers and book link. Returns None if not found.
    """
    rs = session.get(ReadingSession, session_id)
    if not rs or rs.owner_id != owner_id:
        return None
    if book_id is not None and not _owned_book(session, owner_id, book_id):
        raise ValueError(f"book {book_id} is not on this user's shelf")

    rs.pages = _non_negative(pages)
    rs.minutes = _non_negative(minutes)
    rs.book_id = book_id
    if day is not None:
        rs.date = day
    session.flush()
    return rs


def delete_session(session: Session, owner_id: int, session_id: int) -> int:
    res = session.execute(
        delete(ReadingSession).where(ReadingSession.id == session_id, ReadingSession.owner_id == owner_id)
    )
    return int(res.rowcount or 0)


# ---------------------------------------------------------------------------
# Goals (one per owner per range)
# ---------------------------------------------------------------------------

def get_goal(session: Session, owner_id: int, range_: Union[GoalRange, str]) -> Goal | None:
    return session.scalar(
        select(Goal).where(Goal.owner_id == owner_id, Goal.range == GoalRange(range_).value)
    )


def upsert_goal(
    session: Session,
    owner_id: int,
    range_: Union[GoalRange, str],
    target_pages: int,
    now: Optional[dt.datetime] = None,
    first_weekday: Optional[int] = None,
) -> Goal:
    """
    Create or update the owner's goal for a range. Returns the Goal.

    The target is clamped to >= 0 and the start date is reset to the start
    of the current week/year on every write. Last writer wins, including
    when another writer inserts the same (owner, range) between our read and
    our insert: the insert is rolled back to a savepoint and turned into an
    update.
    """
    range_ = GoalRange(range_)
    target = _non_negative(target_pages)
    if first_weekday is None:
        first_weekday = config.FIRST_WEEKDAY
    start = range_start(range_, now, first_weekday)

    goal = get_goal(session, owner_id, range_)
    if goal is None:
        try:
            with session.begin_nested():
                goal = Goal(owner_id=owner_id, range=range_.value, target_pages=target, start_date=start)
                session.add(goal)
            logger.info("Owner %s set a %s goal of %d pages", owner_id, range_.value, target)
            return goal
        except IntegrityError:
            # another writer inserted the row after our read; overwrite theirs
            logger.info("Owner %s %s goal already exists, updating it", owner_id, range_.value)
            goal = get_goal(session, owner_id, range_)
            if goal is None:
                raise

    goal.target_pages = target
    goal.start_date = start
    session.flush()
    return goal


# ---------------------------------------------------------------------------
# Boards (named collections of the owner's books)
# ---------------------------------------------------------------------------

def _owned_board(session: Session, owner_id: int, board_id: int) -> Board | None:
    board = session.get(Board, board_id)
    if not board or board.owner_id != owner_id:
        return None
    return board


def _owned_book_ids(session: Session, owner_id: int, book_ids) -> List[int]:
    """De-duplicated ids in the given order; ValueError if any is not the owner's."""
    ids = list(dict.fromkeys(int(i) for i in (book_ids or ())))
    if not ids:
        return []
    owned = set(session.scalars(select(Book.id).where(Book.owner_id == owner_id, Book.id.in_(ids))))
    missing = [i for i in ids if i not in owned]
    if missing:
        raise ValueError(f"books {missing} are not on this user's shelf")
    return ids


def _assign_books(board: Board, book_ids: List[int]) -> None:
    # reuse rows for books that stay so the (board, book) key is never inserted twice
    existing = {e.book_id: e for e in board.entries}
    entries = []
    for position, book_id in enumerate(book_ids):
        entry = existing.pop(book_id, None) or BoardBook(book_id=book_id)
        entry.position = position
        entries.append(entry)
    board.entries = entries


def create_board(session: Session, owner_id: int, title: str, book_ids=()) -> Board:
    """
    New board holding `book_ids` in that order. A blank title becomes
    'Untitled', but a board needs at least a title or one book.
    """
    title = (title or "").strip()
    ids = _owned_book_ids(session, owner_id, book_ids)
    if not title and not ids:
        raise ValueError("a board needs a title or at least one book")

    board = Board(owner_id=owner_id, title=title[:120] or "Untitled")
    _assign_books(board, ids)
    session.add(board)
    session.flush()
    logger.info("Owner %s created board %r with %d books", owner_id, board.title, len(ids))
    return board


def rename_board(session: Session, owner_id: int, board_id: int, title: str) -> Board | None:
    board = _owned_board(session, owner_id, board_id)
    if not board:
        return None
    board.title = (title or "").strip()[:120] or "Untitled"
    session.flush()
    return board


def set_board_books(session: Session, owner_id: int, board_id: int, book_ids) -> Board | None:
    """
    Replace the board's books with `book_ids` (order kept, duplicates dropped).
    Returns None if the board is not the owner's; ValueError for foreign books.
    """
    board = _owned_board(session, owner_id, board_id)
    if not board:
        return None
    _assign_books(board, _owned_book_ids(session, owner_id, book_ids))
    session.flush()
    return board


def delete_board(session: Session, owner_id: int, board_id: int) -> int:
    """Delete a board; its books stay on the shelves. Returns 0 or 1."""
    board = _owned_board(session, owner_id, board_id)
    if not board:
        return 0
    session.delete(board)
    session.flush()
    return 1
